"""Execution of the protoc process and classification of its output."""

import re
import subprocess
import threading
import time
from typing import IO, Optional

from protogen.exceptions import ProcessLaunchError
from protogen.logging_config import logger

from .command import InvocationCommand
from .result import DiagnosticLine, InvocationOutcome, Severity, Stream

# Progress indicator interval in seconds
PROGRESS_INTERVAL = 60

# How long to wait for output readers once the process has exited
READER_JOIN_TIMEOUT = 10

# protoc diagnostic formats, checked in order: warnings first so that
# "foo.proto:3:1: warning: ..." is not taken for a positional error
WARNING_PATTERNS = (
    re.compile(r"^\[libprotobuf WARNING\b"),
    re.compile(r"^warning:", re.IGNORECASE),
    re.compile(r":\s*warning:", re.IGNORECASE),
)

ERROR_PATTERNS = (
    re.compile(r"^\[libprotobuf (ERROR|FATAL)\b"),
    re.compile(r"^(error|fatal):", re.IGNORECASE),
    re.compile(r":\s*error:", re.IGNORECASE),
    # foo.proto:12:5: Expected ";". The file name may carry a drive letter.
    re.compile(r"^(?:[A-Za-z]:)?[^:]+?\.proto:\d+:\d+:"),
    # foo.proto: File not found.
    re.compile(r"^(?:[A-Za-z]:)?[^:]+?\.proto: "),
    # --reactor_out: protoc-gen-reactor: Plugin failed with status code 1.
    re.compile(r"^--[\w-]+: "),
    re.compile(r"^Could not make proto path relative"),
)


def classify_line(text: str) -> Severity:
    """
    Classify a line of protoc output.

    Args:
        text: Line without its trailing newline

    Returns:
        WARNING or ERROR for known diagnostic formats, otherwise INFO
    """
    stripped = text.strip()
    if not stripped:
        return Severity.INFO
    if any(pattern.search(stripped) for pattern in WARNING_PATTERNS):
        return Severity.WARNING
    if any(pattern.search(stripped) for pattern in ERROR_PATTERNS):
        return Severity.ERROR
    return Severity.INFO


class ProcessRunner:
    """
    Runs an InvocationCommand to completion.

    Standard output and standard error are drained on reader threads while
    the calling thread waits, so a chatty compiler can never block on a
    full pipe. An optional timeout kills the process.
    """

    def __init__(self, timeout: Optional[float] = None, progress_interval: int = PROGRESS_INTERVAL) -> None:
        """
        Initialize the runner.

        Args:
            timeout: Seconds before protoc is killed (None = wait forever)
            progress_interval: Seconds between "still running" log lines
        """
        self._timeout = timeout
        self._progress_interval = progress_interval

    def run(self, command: InvocationCommand) -> InvocationOutcome:
        """
        Run protoc and collect its outcome.

        Returns:
            InvocationOutcome with exit code and classified output

        Raises:
            ProcessLaunchError: If the process could not be started
        """
        logger.info(f"Running command: {command} (cwd: {command.working_directory})")

        try:
            process = subprocess.Popen(
                list(command.arguments),
                cwd=command.working_directory,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                shell=False,
            )
        except OSError as e:
            logger.error(f"Failed to start {command.program}: {e}")
            raise ProcessLaunchError(f"Failed to start {command.program}: {e}") from e

        lines: list[DiagnosticLine] = []
        lines_lock = threading.Lock()
        readers = [
            threading.Thread(
                target=self._drain, args=(process.stdout, Stream.STDOUT, lines, lines_lock), daemon=True
            ),
            threading.Thread(
                target=self._drain, args=(process.stderr, Stream.STDERR, lines, lines_lock), daemon=True
            ),
        ]
        for reader in readers:
            reader.start()

        start_time = time.time()
        stop_progress = threading.Event()

        def log_progress():
            """Log progress periodically while command is running."""
            while not stop_progress.wait(self._progress_interval):
                elapsed = int(time.time() - start_time)
                logger.info(f"protoc still running... ({elapsed // 60}m {elapsed % 60}s elapsed)")

        progress_thread = threading.Thread(target=log_progress, daemon=True)
        progress_thread.start()

        timed_out = False
        try:
            exit_code = process.wait(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            logger.error(f"protoc timed out after {int(time.time() - start_time)}s (limit: {self._timeout}s)")
            process.kill()
            exit_code = process.wait()
        finally:
            stop_progress.set()
            progress_thread.join(timeout=1)
            for reader in readers:
                reader.join(timeout=READER_JOIN_TIMEOUT)

        with lines_lock:
            captured = tuple(lines)

        outcome = InvocationOutcome(
            exit_code=exit_code,
            lines=captured,
            fatal_warnings=command.fatal_warnings,
            timed_out=timed_out,
        )
        logger.debug(
            f"protoc exited with {exit_code}: {len(outcome.warnings)} warning(s), {len(outcome.errors)} error(s)"
        )
        return outcome

    @staticmethod
    def _drain(
        stream: Optional[IO[str]],
        source: Stream,
        lines: list[DiagnosticLine],
        lock: threading.Lock,
    ) -> None:
        if stream is None:
            return
        try:
            for raw in iter(stream.readline, ""):
                text = raw.rstrip("\r\n")
                line = DiagnosticLine(stream=source, text=text, severity=classify_line(text))
                with lock:
                    lines.append(line)
                _log_line(line)
        finally:
            stream.close()


def _log_line(line: DiagnosticLine) -> None:
    if not line.text.strip():
        return
    if line.severity is Severity.ERROR:
        logger.error(f"[protoc] {line.text}")
    elif line.severity is Severity.WARNING:
        logger.warning(f"[protoc] {line.text}")
    else:
        logger.info(f"[protoc] {line.text}")
