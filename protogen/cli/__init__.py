"""CLI module for protogen.

This module provides the command-line interface for protoc resolution and
invocation. It supports both CLI arguments and environment variables for
configuration.
"""

from .main import (
    Config,
    build_config,
    cli,
    evaluate_boolean,
    load_config_file,
    main,
    run_generation,
)

__all__ = [
    "cli",
    "main",
    "Config",
    "build_config",
    "load_config_file",
    "run_generation",
    "evaluate_boolean",
]
