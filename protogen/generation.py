"""
Source Generation Module

This module provides the public API for generating sources from .proto files.

Supported features:
- protoc from the system path, an exact version, or a version range
- Plugins from Maven coordinates or system executables
- Java (optionally lite) and Kotlin output
- Fatal warnings and process timeouts

Usage:
    from protogen.generation import generate, generate_sources

    # Returns a GenerationResult
    result = generate(GenerationRequest.create("3.25.1", ProjectLayout(Path.cwd())))

    # Raises on failure
    generate_sources(request)
"""

from typing import Optional

# Re-export public API
from ._generation import (
    GenerationRequest,
    GenerationResult,
    PluginBean,
    ProjectLayout,
    SourceCodeGenerator,
    SourceRootKind,
    create_default_generator,
)
from .exceptions import CompilationFailedError
from .logging_config import logger

# Module-level generator instance (lazy initialization)
_generator: Optional[SourceCodeGenerator] = None

__all__ = [
    # Core API
    "generate",
    "generate_sources",
    # Types
    "GenerationRequest",
    "GenerationResult",
    "PluginBean",
    "ProjectLayout",
    "SourceRootKind",
    # Advanced usage
    "SourceCodeGenerator",
    "create_default_generator",
]


def _get_generator() -> SourceCodeGenerator:
    """Get or create the module-level generator."""
    global _generator
    if _generator is None:
        _generator = create_default_generator()
    return _generator


def generate(request: GenerationRequest) -> GenerationResult:
    """
    Generate sources for a request.

    This is the primary entry point. Failures are reported in the result,
    never raised.

    Args:
        request: What to compile and where to put it

    Returns:
        GenerationResult with output directory and outcome
    """
    return _get_generator().generate(request)


def generate_sources(request: GenerationRequest) -> GenerationResult:
    """
    Generate sources and raise if that fails.

    Args:
        request: What to compile and where to put it

    Returns:
        Successful (or skipped) GenerationResult

    Raises:
        ProtogenError: The error that caused the failure
    """
    result = generate(request)

    if not result.success:
        if result.error is not None:
            raise result.error
        raise CompilationFailedError(result.error_message or "Source generation failed")

    if result.skipped:
        logger.info(f"No {request.kind.value} sources to generate")
    return result
