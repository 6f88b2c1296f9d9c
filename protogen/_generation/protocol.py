"""Core types for protoc resolution and invocation.

This module defines the request, version specifier, plugin and artifact
types shared by every component, plus the collaborator protocols the
engine consumes (artifact resolution, source root registration).
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Protocol

from protogen.exceptions import ConfigurationError

# =============================================================================
# Conventions
# =============================================================================

PROTOC_GROUP_ID = "com.google.protobuf"
PROTOC_ARTIFACT_ID = "protoc"
PROTOC_EXECUTABLE = "protoc"

# Maven type used for native executables published to repositories
EXECUTABLE_TYPE = "exe"
DEFAULT_ARTIFACT_TYPE = "jar"

# Literal version value that selects protoc from the system path
PATH_MARKER = "PATH"


class SourceRootKind(str, Enum):
    """Which compile root of the enclosing build receives generated code."""

    MAIN = "main"
    TEST = "test"


class VersionKind(str, Enum):
    PATH = "path"
    EXACT = "exact"
    RANGE = "range"


@dataclass(frozen=True)
class VersionSpecifier:
    """
    A protoc version request: the system path, an exact version, or a range.

    Attributes:
        kind: Which interpretation applies
        value: The original text (e.g. "PATH", "3.25.1", "[3.5.0,4.0.0)")
    """

    kind: VersionKind
    value: str

    @classmethod
    def parse(cls, text: str) -> "VersionSpecifier":
        """
        Parse a version specifier string.

        "PATH" (any case) selects the system binary, a value opening with
        "[" or "(" is a Maven version range, anything else is exact.

        Raises:
            ConfigurationError: If the value is blank
        """
        if text is None or not text.strip():
            raise ConfigurationError("protoc version must not be blank")
        value = text.strip()
        if value.upper() == PATH_MARKER:
            return cls(VersionKind.PATH, PATH_MARKER)
        if value[0] in "[(":
            return cls(VersionKind.RANGE, value)
        return cls(VersionKind.EXACT, value)

    @property
    def is_path(self) -> bool:
        return self.kind is VersionKind.PATH

    @property
    def is_range(self) -> bool:
        return self.kind is VersionKind.RANGE

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ArtifactCoordinates:
    """
    Maven-style coordinates of a downloadable artifact.

    Attributes:
        group_id: Group, e.g. "com.google.protobuf"
        artifact_id: Artifact, e.g. "protoc"
        version: Version; may be None only for catalog lookups
        type: Packaging type, used as the file extension (None = "jar")
        classifier: Optional platform or variant suffix
    """

    group_id: str
    artifact_id: str
    version: Optional[str] = None
    type: Optional[str] = None
    classifier: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.group_id or not self.artifact_id:
            raise ValueError("Artifact coordinates need a groupId and an artifactId")

    @classmethod
    def parse(cls, text: str) -> "ArtifactCoordinates":
        """
        Parse "group:artifact:version[:type[:classifier]]".

        Raises:
            ValueError: If fewer than three or more than five parts are given
        """
        parts = [part.strip() for part in text.split(":")]
        if len(parts) < 3 or len(parts) > 5 or not all(parts):
            raise ValueError(f"Invalid coordinates '{text}'. Expected group:artifact:version[:type[:classifier]]")
        group_id, artifact_id, version = parts[:3]
        artifact_type = parts[3] if len(parts) > 3 else None
        classifier = parts[4] if len(parts) > 4 else None
        return cls(group_id, artifact_id, version, artifact_type, classifier)

    def with_version(self, version: str) -> "ArtifactCoordinates":
        return ArtifactCoordinates(self.group_id, self.artifact_id, version, self.type, self.classifier)

    @property
    def extension(self) -> str:
        return self.type or DEFAULT_ARTIFACT_TYPE

    @property
    def file_name(self) -> str:
        """File name in a Maven repository, e.g. protoc-3.25.1-linux-x86_64.exe."""
        classifier = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{classifier}.{self.extension}"

    @property
    def directory(self) -> str:
        """Repository-relative directory holding all versions of this artifact."""
        return "/".join([*self.group_id.split("."), self.artifact_id])

    @property
    def repository_path(self) -> str:
        """Repository-relative path of the artifact file."""
        if not self.version:
            raise ValueError(f"{self} has no version")
        return f"{self.directory}/{self.version}/{self.file_name}"

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.version or "?", self.extension]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


def protoc_coordinates(version: Optional[str] = None, classifier: Optional[str] = None) -> ArtifactCoordinates:
    """Coordinates of the protoc binary published to Maven Central."""
    return ArtifactCoordinates(PROTOC_GROUP_ID, PROTOC_ARTIFACT_ID, version, EXECUTABLE_TYPE, classifier)


@dataclass(frozen=True)
class PluginBean:
    """
    A protoc plugin to run alongside the main code generator.

    The id names both the plugin binary (protoc-gen-<id>) and its output
    flag (--<id>_out). Exactly one of dependency or executable_name is set.
    A dependency without a type is resolved as an executable ("exe") and a
    missing classifier is filled in from the host platform.
    """

    id: str
    dependency: Optional[ArtifactCoordinates] = None
    executable_name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate plugin definition."""
        if not self.id or not self.id.strip():
            raise ValueError("Plugin id must not be blank")
        if self.dependency and self.executable_name:
            raise ValueError(f"Plugin '{self.id}' cannot specify both a dependency and an executable name")
        if not self.dependency and not self.executable_name:
            raise ValueError(f"Plugin '{self.id}' must specify either a dependency or an executable name")
        if self.dependency and not self.dependency.version:
            raise ValueError(f"Plugin '{self.id}' dependency needs a version")

    @classmethod
    def parse(cls, text: str) -> "PluginBean":
        """
        Parse "id=group:artifact:version[:type[:classifier]]" or "id=executable".

        Raises:
            ValueError: If the text is not in either form
        """
        plugin_id, sep, source = text.partition("=")
        if not sep or not plugin_id.strip() or not source.strip():
            raise ValueError(f"Invalid plugin '{text}'. Expected ID=group:artifact:version or ID=executable")
        source = source.strip()
        if ":" in source:
            return cls(id=plugin_id.strip(), dependency=ArtifactCoordinates.parse(source))
        return cls(id=plugin_id.strip(), executable_name=source)

    @property
    def is_dependency(self) -> bool:
        return self.dependency is not None


@dataclass(frozen=True)
class ProjectLayout:
    """
    Default locations for one project.

    Attributes:
        base_directory: Project root; protoc runs here
        build_directory: Build output root (defaults to <base>/target)
    """

    base_directory: Path
    build_directory: Optional[Path] = None

    @property
    def build_root(self) -> Path:
        return self.build_directory or self.base_directory / "target"

    def default_source_directory(self, kind: SourceRootKind) -> Path:
        return self.base_directory / "src" / kind.value / "protobuf"

    def default_output_directory(self, kind: SourceRootKind) -> Path:
        if kind is SourceRootKind.TEST:
            return self.build_root / "generated-test-sources" / "protobuf"
        return self.build_root / "generated-sources" / "protobuf"


@dataclass(frozen=True)
class GenerationRequest:
    """
    Everything needed for one protoc run.

    Attributes:
        protoc_version: Which protoc to use
        output_directory: Where generated sources are written
        kind: Source root kind the output is registered as
        source_directories: Directories whose .proto files are compiled
        import_paths: Extra directories that are importable but not compiled
        import_dependencies: Archives whose .proto files are importable but not compiled
        plugins: Additional plugins, in declaration order
        lite_enabled: Generate "lite" message classes only
        kotlin_enabled: Also generate Kotlin wrappers
        fatal_warnings: Treat compiler warnings as errors
        base_directory: Build root used as the working directory
    """

    protoc_version: VersionSpecifier
    output_directory: Path
    kind: SourceRootKind = SourceRootKind.MAIN
    source_directories: tuple[Path, ...] = ()
    import_paths: tuple[Path, ...] = ()
    import_dependencies: tuple[ArtifactCoordinates, ...] = ()
    plugins: tuple[PluginBean, ...] = ()
    lite_enabled: bool = False
    kotlin_enabled: bool = False
    fatal_warnings: bool = False
    base_directory: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        """Validate request parameters."""
        if self.output_directory is None:
            raise ValueError("output_directory is required")
        if not self.source_directories:
            raise ValueError("At least one source directory is required")
        for dependency in self.import_dependencies:
            if not dependency.version:
                raise ValueError(f"Import dependency {dependency} needs a version")

    @classmethod
    def create(
        cls,
        protoc_version: str,
        layout: ProjectLayout,
        kind: SourceRootKind = SourceRootKind.MAIN,
        source_directories: Optional[Iterable[Path]] = None,
        import_paths: Optional[Iterable[Path]] = None,
        import_dependencies: Optional[Iterable[ArtifactCoordinates]] = None,
        output_directory: Optional[Path] = None,
        plugins: Optional[Iterable[PluginBean]] = None,
        lite_enabled: bool = False,
        kotlin_enabled: bool = False,
        fatal_warnings: bool = False,
    ) -> "GenerationRequest":
        """
        Build a request, filling unset paths from the project layout.

        Relative paths are resolved against the layout's base directory.
        """
        base = layout.base_directory

        def absolute(path: Path) -> Path:
            path = Path(path)
            return path if path.is_absolute() else base / path

        sources = tuple(absolute(p) for p in source_directories or ())
        return cls(
            protoc_version=VersionSpecifier.parse(protoc_version),
            output_directory=absolute(output_directory) if output_directory else layout.default_output_directory(kind),
            kind=kind,
            source_directories=sources or (layout.default_source_directory(kind),),
            import_paths=tuple(absolute(p) for p in import_paths or ()),
            import_dependencies=tuple(import_dependencies or ()),
            plugins=tuple(plugins or ()),
            lite_enabled=lite_enabled,
            kotlin_enabled=kotlin_enabled,
            fatal_warnings=fatal_warnings,
            base_directory=base,
        )


@dataclass(frozen=True)
class ResolvedBinary:
    """
    An executable file ready to be passed to the compiler invocation.

    Attributes:
        path: Absolute path to the executable
        source: Where it came from (e.g. "PATH" or artifact coordinates)
    """

    path: Path
    source: str = ""


# =============================================================================
# Collaborator protocols
# =============================================================================


class ArtifactResolver(Protocol):
    """
    Capability that turns coordinates into files on disk.

    Example:
        class StaticResolver:
            def resolve_artifact(self, coordinates):
                return Path("/opt/tools") / coordinates.file_name

            def list_available_versions(self, coordinates):
                return ["3.25.1"]
    """

    def resolve_artifact(self, coordinates: ArtifactCoordinates) -> Optional[Path]:
        """Return the local file for the coordinates, or None when it does not exist."""
        ...

    def list_available_versions(self, coordinates: ArtifactCoordinates) -> list[str]:
        """Return every published version of the coordinates' group and artifact."""
        ...


class SourceRootRegistrar(Protocol):
    """Build model hook told about directories containing generated sources."""

    def register(self, path: Path, kind: SourceRootKind) -> None:
        """Register path as a compile root of the given kind. Must be idempotent."""
        ...
