"""protoc Resolution and Invocation.

This module resolves the Protocol Buffers compiler and its plugins and runs
them against a project's .proto sources:
- protoc from the system path, an exact version, or a Maven version range
- Plugins from dependency coordinates or system executables
- Import-only .proto files from dependency archives
- Concurrent resolution with aggregated plugin failures
- Classified compiler diagnostics, fatal warnings, and timeouts
- Idempotent registration of generated source roots

Usage:
    from protogen._generation import (
        GenerationRequest,
        ProjectLayout,
        create_default_generator,
    )

    generator = create_default_generator()
    result = generator.generate(GenerationRequest.create(
        "[3.5.0,4.0.0)",
        ProjectLayout(Path.cwd()),
    ))
"""

from .artifacts import MAVEN_CENTRAL_URL, MavenRepositoryResolver
from .command import InvocationBuilder, InvocationCommand
from .compiler import ProtocLocator
from .generator import SourceCodeGenerator, create_default_generator
from .imports import ImportDependencyLocator, extract_proto_files
from .platform import FixedPlatformClassifier, HostPlatformClassifier, PlatformId, classify
from .plugins import PluginLocator
from .protocol import (
    # Types
    ArtifactCoordinates,
    ArtifactResolver,
    GenerationRequest,
    PluginBean,
    ProjectLayout,
    ResolvedBinary,
    SourceRootKind,
    SourceRootRegistrar,
    VersionSpecifier,
)
from .registrar import SourceRootRegistry
from .result import DiagnosticLine, GenerationResult, InvocationOutcome, Severity
from .runner import ProcessRunner
from .versions import VersionRange, select_version

__all__ = [
    # Core types
    "ArtifactCoordinates",
    "GenerationRequest",
    "GenerationResult",
    "PluginBean",
    "ProjectLayout",
    "ResolvedBinary",
    "SourceRootKind",
    "VersionSpecifier",
    # Collaborator protocols
    "ArtifactResolver",
    "SourceRootRegistrar",
    # Platform
    "PlatformId",
    "classify",
    "HostPlatformClassifier",
    "FixedPlatformClassifier",
    # Versions
    "VersionRange",
    "select_version",
    # Resolution
    "MAVEN_CENTRAL_URL",
    "MavenRepositoryResolver",
    "ProtocLocator",
    "PluginLocator",
    "ImportDependencyLocator",
    "extract_proto_files",
    # Invocation
    "InvocationBuilder",
    "InvocationCommand",
    "ProcessRunner",
    "InvocationOutcome",
    "DiagnosticLine",
    "Severity",
    # Orchestration
    "SourceRootRegistry",
    "SourceCodeGenerator",
    "create_default_generator",
]
