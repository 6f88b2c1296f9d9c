"""Custom exceptions for protogen."""

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from ._generation.result import InvocationOutcome


class ProtogenError(Exception):
    """Base exception for all protogen operations."""


class ConfigurationError(ProtogenError):
    """Raised when configuration validation fails."""


class DuplicatePluginIdentifierError(ConfigurationError):
    """Raised when two plugins in one request share an identifier."""

    def __init__(self, duplicates: Sequence[str]) -> None:
        self.duplicates = tuple(duplicates)
        super().__init__(f"Duplicate plugin identifiers: {', '.join(self.duplicates)}")


class ResolutionError(ProtogenError):
    """Raised when a binary cannot be resolved."""


class UnsupportedPlatformError(ResolutionError):
    """Raised when the host OS or architecture has no known classifier."""


class CompilerNotFoundError(ResolutionError):
    """Raised when protoc cannot be resolved for a version specifier."""

    def __init__(self, message: str, specifier: Optional[str] = None) -> None:
        self.specifier = specifier
        super().__init__(message)


class PluginNotFoundError(ResolutionError):
    """Raised when a single plugin cannot be resolved."""

    def __init__(self, plugin_id: str, message: str) -> None:
        self.plugin_id = plugin_id
        super().__init__(message)


class PluginResolutionError(ResolutionError):
    """Raised with every plugin failure collected from one request."""

    def __init__(self, failures: Sequence[ResolutionError]) -> None:
        self.failures = tuple(failures)
        details = "\n".join(f"  - {failure}" for failure in self.failures)
        super().__init__(f"Failed to resolve {len(self.failures)} plugin(s):\n{details}")


class BinaryPermissionError(ResolutionError):
    """Raised when a resolved binary cannot be made executable."""


class ImportDependencyError(ResolutionError):
    """Raised when an import dependency cannot be resolved or read."""

    def __init__(self, message: str, dependencies: Sequence[str] = ()) -> None:
        self.dependencies = tuple(dependencies)
        super().__init__(message)


class InvocationError(ProtogenError):
    """Raised when running protoc does not succeed."""


class ProcessLaunchError(InvocationError):
    """Raised when the operating system refuses to start protoc."""


class OutputDirectoryError(InvocationError):
    """Raised when the output directory cannot be created."""


class CompilationFailedError(InvocationError):
    """Raised when protoc exits non-zero or warnings are fatal."""

    def __init__(self, message: str, outcome: Optional["InvocationOutcome"] = None) -> None:
        self.outcome = outcome
        super().__init__(message)


class CompilationTimeoutError(InvocationError):
    """Raised when protoc is killed after exceeding its timeout."""

    def __init__(self, message: str, outcome: Optional["InvocationOutcome"] = None) -> None:
        self.outcome = outcome
        super().__init__(message)
