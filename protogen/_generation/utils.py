"""Shared utilities for protoc resolution and invocation."""

import os
import stat
from pathlib import Path
from typing import Callable, Iterable, Optional

from protogen.exceptions import BinaryPermissionError
from protogen.logging_config import logger

# Signature of tool_checks.check_tool_available, injectable for tests
PathLookup = Callable[[str], tuple[bool, Optional[str]]]

PROTO_FILE_GLOB = "*.proto"


def make_executable(path: Path) -> None:
    """
    Grant execute permission on a resolved binary.

    Windows decides executability from the file extension, so nothing is
    changed there.

    Args:
        path: File to mark executable

    Raises:
        BinaryPermissionError: If the permission cannot be granted
    """
    if os.name == "nt":
        return

    try:
        mode = path.stat().st_mode
        wanted = mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
        if mode != wanted:
            path.chmod(wanted)
            logger.debug(f"Marked {path} as executable")
    except OSError as e:
        raise BinaryPermissionError(f"Failed to make {path} executable: {e}") from e

    if not os.access(path, os.X_OK):
        raise BinaryPermissionError(f"{path} is not executable")


def find_proto_sources(directories: Iterable[Path]) -> list[Path]:
    """
    Find every .proto file below the given directories.

    Missing directories are skipped with a warning. Results are sorted per
    directory and de-duplicated so the compiler command is reproducible.

    Args:
        directories: Source directories in declaration order

    Returns:
        Absolute paths of .proto files
    """
    found: list[Path] = []
    seen: set[Path] = set()

    for directory in directories:
        if not directory.is_dir():
            logger.warning(f"Source directory {directory} does not exist, skipping")
            continue

        for path in sorted(directory.rglob(PROTO_FILE_GLOB)):
            if not path.is_file():
                continue
            path = path.absolute()
            if path not in seen:
                seen.add(path)
                found.append(path)

    return found
