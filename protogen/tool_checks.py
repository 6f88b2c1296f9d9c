"""Tool availability checks for executables resolved from the system path.

This module provides the PATH lookups used when protoc is requested as
"PATH" and when a plugin names a system executable. When protoc is missing,
it provides installation instructions.
"""

import shutil
from dataclasses import dataclass, field
from typing import Optional

from .logging_config import logger


@dataclass
class ToolInfo:
    """Information about an external tool."""

    name: str
    command: str
    description: str
    install_instructions: str
    homepage: str
    required_for: list[str] = field(default_factory=list)


PROTOC_TOOL = ToolInfo(
    name="protoc",
    command="protoc",
    description="Protocol Buffers compiler",
    install_instructions=(
        "Install via package manager:\n"
        "  - macOS: brew install protobuf\n"
        "  - Debian/Ubuntu: apt-get install protobuf-compiler\n"
        "  - Windows: choco install protoc\n"
        "Or set --protoc-version to a released version to download it instead."
    ),
    homepage="https://github.com/protocolbuffers/protobuf/releases",
    required_for=['protoc version "PATH"'],
)


@dataclass
class ToolStatus:
    """Status of an external tool."""

    name: str
    available: bool
    path: Optional[str] = None
    info: Optional[ToolInfo] = None


def check_tool_available(command: str) -> tuple[bool, Optional[str]]:
    """
    Check if a command-line tool is available on the system.

    Args:
        command: The command to check (e.g., "protoc", "grpc_python_plugin")

    Returns:
        Tuple of (is_available, path_if_found)
    """
    path = shutil.which(command)
    return (path is not None, path)


def check_tool(info: ToolInfo) -> ToolStatus:
    """Check a single tool and attach its metadata."""
    available, path = check_tool_available(info.command)
    return ToolStatus(name=info.name, available=available, path=path, info=info)


def check_all_tools(extra_commands: Optional[list[str]] = None) -> dict[str, ToolStatus]:
    """
    Check availability of protoc and any additional executables.

    Args:
        extra_commands: Plugin executable names to check alongside protoc

    Returns:
        Dictionary mapping command names to their status
    """
    results = {PROTOC_TOOL.command: check_tool(PROTOC_TOOL)}
    for command in extra_commands or []:
        available, path = check_tool_available(command)
        results[command] = ToolStatus(name=command, available=available, path=path)
    return results


def log_tool_status(extra_commands: Optional[list[str]] = None) -> None:
    """Log which executables are present on the system path."""
    statuses = check_all_tools(extra_commands)
    available = [s for s in statuses.values() if s.available]
    missing = [s for s in statuses.values() if not s.available]

    if available:
        logger.info(f"Available on PATH: {', '.join(f'{s.name} ({s.path})' for s in available)}")

    if missing:
        logger.warning(f"Missing from PATH: {', '.join(s.name for s in missing)}")


def get_tool_install_message(info: ToolInfo = PROTOC_TOOL) -> str:
    """
    Get a formatted message with installation instructions for a tool.

    Args:
        info: Tool to describe

    Returns:
        Formatted installation instructions string
    """
    lines = [f"{info.name} ({info.homepage})"]
    lines.extend(f"  {line}" for line in info.install_instructions.split("\n"))
    return "\n".join(lines)
