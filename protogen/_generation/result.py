"""Result types for protoc invocations and generation requests."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from protogen.exceptions import ProtogenError

from .protocol import SourceRootKind


class Stream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class DiagnosticLine:
    """One line of compiler output, tagged with its stream and severity."""

    stream: Stream
    text: str
    severity: Severity = Severity.INFO

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class InvocationOutcome:
    """
    What happened when protoc ran.

    Attributes:
        exit_code: Process exit status (None if it never finished)
        lines: Every captured output line in arrival order
        fatal_warnings: Whether warnings count as failure
        timed_out: Whether the process was killed after the timeout
    """

    exit_code: Optional[int]
    lines: tuple[DiagnosticLine, ...] = ()
    fatal_warnings: bool = False
    timed_out: bool = False

    @property
    def warnings(self) -> list[DiagnosticLine]:
        return [line for line in self.lines if line.severity is Severity.WARNING]

    @property
    def errors(self) -> list[DiagnosticLine]:
        return [line for line in self.lines if line.severity is Severity.ERROR]

    @property
    def success(self) -> bool:
        """Exit code zero, not timed out, and no warnings when warnings are fatal."""
        if self.timed_out or self.exit_code != 0:
            return False
        return not (self.fatal_warnings and self.warnings)

    @property
    def failed_on_warnings(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.fatal_warnings and bool(self.warnings)

    def format_diagnostics(self) -> str:
        """All captured lines joined for inclusion in error messages."""
        return "\n".join(line.text for line in self.lines)


@dataclass
class GenerationResult:
    """
    Result of a generation request.

    Attributes:
        success: Whether sources were generated (or there was nothing to do)
        kind: Source root kind of the request
        output_directory: Where sources were written
        error_message: Error message if generation failed
        error: The exception that caused the failure
        outcome: The compiler outcome, if protoc was run
        skipped: True when no .proto sources were found
        compiler: Path of the protoc binary that was used
        plugins: Plugin id to binary path
    """

    success: bool
    kind: SourceRootKind
    output_directory: Path
    error_message: Optional[str] = None
    error: Optional[ProtogenError] = None
    outcome: Optional[InvocationOutcome] = None
    skipped: bool = False
    compiler: Optional[Path] = None
    plugins: dict[str, Path] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate result state."""
        if not self.success and not self.error_message:
            raise ValueError("Failed result must have error_message")

    @classmethod
    def success_result(
        cls,
        kind: SourceRootKind,
        output_directory: Path,
        outcome: Optional[InvocationOutcome] = None,
        compiler: Optional[Path] = None,
        plugins: Optional[dict[str, Path]] = None,
    ) -> "GenerationResult":
        """Create a successful generation result."""
        return cls(
            success=True,
            kind=kind,
            output_directory=output_directory,
            outcome=outcome,
            compiler=compiler,
            plugins=dict(plugins or {}),
        )

    @classmethod
    def skipped_result(cls, kind: SourceRootKind, output_directory: Path) -> "GenerationResult":
        """Create a result for a request that had no sources to compile."""
        return cls(success=True, kind=kind, output_directory=output_directory, skipped=True)

    @classmethod
    def failure_result(
        cls,
        kind: SourceRootKind,
        output_directory: Path,
        error: ProtogenError,
        outcome: Optional[InvocationOutcome] = None,
    ) -> "GenerationResult":
        """Create a failed generation result."""
        return cls(
            success=False,
            kind=kind,
            output_directory=output_directory,
            error_message=str(error),
            error=error,
            outcome=outcome,
        )
