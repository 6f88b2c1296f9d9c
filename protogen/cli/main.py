import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import click
import sentry_sdk

from .. import __version__
from .._generation import (
    MAVEN_CENTRAL_URL,
    ArtifactCoordinates,
    GenerationRequest,
    GenerationResult,
    PluginBean,
    ProjectLayout,
    SourceRootKind,
    classify,
    create_default_generator,
)
from ..console import (
    console,
    gha_warning,
    print_banner,
    print_diagnostics,
    print_final_failure,
    print_final_success,
    print_generation_summary,
    print_step_end,
    print_step_header,
    print_summary_table,
)
from ..exceptions import ConfigurationError, DuplicatePluginIdentifierError, UnsupportedPlatformError
from ..logging_config import logger, set_log_level
from ..tool_checks import PROTOC_TOOL, check_all_tools, get_tool_install_message, log_tool_status

PROTOGEN_VERSION = __version__

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@dataclass
class Config:
    """Configuration settings for one generation run."""

    protoc_version: str
    kind: str = SourceRootKind.MAIN.value
    base_dir: str = "."
    build_dir: Optional[str] = None
    source_dirs: list[str] = field(default_factory=list)
    import_paths: list[str] = field(default_factory=list)
    import_dependencies: list[str] = field(default_factory=list)
    output_dir: Optional[str] = None
    plugins: list[str] = field(default_factory=list)
    lite: bool = False
    kotlin: bool = False
    fatal_warnings: bool = False
    timeout: Optional[float] = None
    offline: bool = False
    repository_url: str = MAVEN_CENTRAL_URL
    local_repository: Optional[str] = None
    repository_token: Optional[str] = field(default=None, repr=False)

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.protoc_version or not self.protoc_version.strip():
            raise ConfigurationError('protoc version is not defined (use a version, a range, or "PATH")')

        if self.kind not in {k.value for k in SourceRootKind}:
            raise ConfigurationError(f"Invalid source root kind '{self.kind}'. Expected 'main' or 'test'")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("Timeout must be a positive number of seconds")

        for plugin in self.plugins:
            try:
                PluginBean.parse(plugin)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e

        for dependency in self.import_dependencies:
            try:
                ArtifactCoordinates.parse(dependency)
            except ValueError as e:
                raise ConfigurationError(f"Invalid import dependency: {e}") from e

        self._validate_repository_url()

    def _validate_repository_url(self) -> None:
        parsed = urlparse(self.repository_url)

        if not parsed.scheme or parsed.scheme not in ("http", "https"):
            raise ConfigurationError("Repository URL must start with http:// or https://")
        if not parsed.netloc:
            raise ConfigurationError("Repository URL must include a valid hostname")

        if parsed.scheme == "http":
            logger.warning("Using HTTP (not HTTPS) for the artifact repository - downloads are not protected")

        if self.repository_url.endswith("/"):
            self.repository_url = self.repository_url.rstrip("/")

    @property
    def source_root_kind(self) -> SourceRootKind:
        return SourceRootKind(self.kind)

    def to_request(self) -> GenerationRequest:
        """
        Convert the configuration into a GenerationRequest.

        Raises:
            ConfigurationError: If the request cannot be built
        """
        base = Path(self.base_dir).absolute()
        build = Path(self.build_dir) if self.build_dir else None
        if build is not None and not build.is_absolute():
            build = base / build

        try:
            plugins = [PluginBean.parse(plugin) for plugin in self.plugins]
            import_dependencies = [ArtifactCoordinates.parse(dependency) for dependency in self.import_dependencies]
            return GenerationRequest.create(
                self.protoc_version,
                ProjectLayout(base, build),
                kind=self.source_root_kind,
                source_directories=[Path(p) for p in self.source_dirs],
                import_paths=[Path(p) for p in self.import_paths],
                import_dependencies=import_dependencies,
                output_directory=Path(self.output_dir) if self.output_dir else None,
                plugins=plugins,
                lite_enabled=self.lite,
                kotlin_enabled=self.kotlin,
                fatal_warnings=self.fatal_warnings,
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


def evaluate_boolean(value: Any) -> bool:
    """
    Evaluate string values as boolean.

    Args:
        value: String (or bool) value to evaluate

    Returns:
        Boolean result
    """
    if isinstance(value, bool):
        return value
    return str(value).lower() in ["true", "yes", "yeah", "1"]


def _plugin_from_json(entry: Any) -> str:
    """Accept "ID=SPEC" strings or {"id", "dependency" | "executable"} objects."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict) and entry.get("id"):
        source = entry.get("dependency") or entry.get("executable")
        if source:
            return f"{entry['id']}={source}"
    raise ConfigurationError(f"Invalid plugin entry in config file: {entry!r}")


def load_config_file(path: str) -> dict[str, Any]:
    """
    Load settings from a JSON config file.

    Keys match the Config field names. Plugins may be given as "ID=SPEC"
    strings or as objects with "id" and "dependency" or "executable".

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    unknown = set(data) - set(Config.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"Unknown keys in config file {path}: {', '.join(sorted(unknown))}")

    if "plugins" in data:
        data["plugins"] = [_plugin_from_json(entry) for entry in data["plugins"] or []]
    for key in ("lite", "kotlin", "fatal_warnings", "offline"):
        if key in data:
            data[key] = evaluate_boolean(data[key])

    logger.info(f"Loaded configuration from {path}")
    return data


def build_config(config_file: Optional[str] = None, **options: Any) -> Config:
    """
    Build a Config from command-line options and an optional config file.

    Options that are None or empty fall back to the config file, then to
    the Config defaults. Environment variables are already folded into the
    options by click.

    Returns:
        Validated Config

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    values: dict[str, Any] = load_config_file(config_file) if config_file else {}

    for key, value in options.items():
        if value is None or (isinstance(value, (list, tuple)) and not value):
            continue
        values[key] = list(value) if isinstance(value, tuple) else value

    if not values.get("protoc_version"):
        raise ConfigurationError('protoc version is not defined (use --protoc-version or PROTOC_VERSION)')

    config = Config(**values)
    config.validate()
    return config


def initialize_sentry() -> None:
    """Initialize Sentry for error tracking when a DSN is configured."""
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn or os.getenv("TELEMETRY", "true").lower() == "false":
        return

    def before_send(event, hint):
        """
        Filter events before sending to Sentry.
        Don't send configuration errors - these are expected user errors.
        """
        if "exc_info" in hint:
            exc_type, exc_value, tb = hint["exc_info"]
            if isinstance(exc_value, ConfigurationError):
                return None
        return event

    sentry_sdk.init(
        dsn=sentry_dsn,
        send_default_pii=False,
        traces_sample_rate=1.0,
        before_send=before_send,
    )


def run_generation(config: Config) -> GenerationResult:
    """
    Run one generation request described by the configuration.

    Args:
        config: Validated configuration

    Returns:
        GenerationResult from the generator
    """
    request = config.to_request()

    print_step_header(1, "Configuration")
    print_summary_table(
        "Request",
        [
            ("protoc version", request.protoc_version),
            ("Source root kind", request.kind.value),
            ("Source directories", ", ".join(map(str, request.source_directories))),
            ("Import paths", ", ".join(map(str, request.import_paths))),
            ("Import dependencies", ", ".join(map(str, request.import_dependencies))),
            ("Output directory", request.output_directory),
            ("Plugins", ", ".join(plugin.id for plugin in request.plugins)),
            ("Lite", "yes" if request.lite_enabled else ""),
            ("Kotlin", "yes" if request.kotlin_enabled else ""),
            ("Fatal warnings", "yes" if request.fatal_warnings else ""),
            ("Offline", "yes" if config.offline else ""),
        ],
    )
    print_step_end(1)

    print_step_header(2, "Source Generation")
    if request.protoc_version.is_path:
        log_tool_status([plugin.executable_name for plugin in request.plugins if plugin.executable_name])
    generator = create_default_generator(
        repository_url=config.repository_url,
        local_repository=Path(config.local_repository) if config.local_repository else None,
        offline=config.offline,
        timeout=config.timeout,
        repository_token=config.repository_token,
    )
    result = generator.generate(request)

    if result.outcome is not None:
        print_diagnostics(result.outcome)
    print_step_end(2, success=result.success)

    return result


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(PROTOGEN_VERSION, "--version", prog_name="protogen")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar="LOG_LEVEL",
    default="INFO",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Resolve protoc and its plugins, and generate sources from .proto files."""
    set_log_level(log_level)


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option("--protoc-version", envvar="PROTOC_VERSION", help='protoc version, Maven range, or "PATH".')
@click.option(
    "--kind",
    type=click.Choice([k.value for k in SourceRootKind], case_sensitive=False),
    envvar="SOURCE_ROOT_KIND",
    help="Source root the output is registered as [default: main].",
)
@click.option("--base-dir", envvar="BASE_DIR", help="Project root; protoc runs here [default: .].")
@click.option("--build-dir", envvar="BUILD_DIR", help="Build output root [default: <base-dir>/target].")
@click.option("--source-dir", "source_dirs", multiple=True, help="Directory of .proto files to compile.")
@click.option("--import-path", "import_paths", multiple=True, help="Extra import-only .proto directory.")
@click.option(
    "--import-dependency",
    "import_dependencies",
    multiple=True,
    help="Archive of import-only .proto files as group:artifact:version[:type[:classifier]].",
)
@click.option("--output-dir", envvar="OUTPUT_DIRECTORY", help="Where generated sources are written.")
@click.option(
    "--plugin",
    "plugins",
    multiple=True,
    help="Plugin as ID=group:artifact:version[:type[:classifier]] or ID=executable.",
)
@click.option("--lite/--no-lite", default=None, envvar="LITE_ONLY", help="Generate lite message classes.")
@click.option("--kotlin/--no-kotlin", default=None, envvar="KOTLIN_ENABLED", help="Also generate Kotlin code.")
@click.option(
    "--fatal-warnings/--no-fatal-warnings",
    default=None,
    envvar="FATAL_WARNINGS",
    help="Fail when protoc reports warnings.",
)
@click.option("--timeout", type=float, envvar="PROTOC_TIMEOUT", help="Seconds before protoc is killed.")
@click.option(
    "--offline/--no-offline",
    default=None,
    envvar="PROTOGEN_OFFLINE",
    help="Resolve artifacts from the local repository only.",
)
@click.option("--repository-url", envvar="MAVEN_REPOSITORY_URL", help="Remote Maven repository URL.")
@click.option("--local-repository", envvar="MAVEN_LOCAL_REPOSITORY", help="Local artifact repository directory.")
@click.option(
    "--repository-token",
    envvar="MAVEN_REPOSITORY_TOKEN",
    help="Bearer token for an authenticated remote repository.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file supplying any of the above options.",
)
def generate(config_file: Optional[str], **options: Any) -> None:
    """Generate sources from .proto files."""
    initialize_sentry()
    print_banner(PROTOGEN_VERSION)

    try:
        config = build_config(config_file=config_file, **options)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print_final_failure(f"Configuration error: {e}")
        sys.exit(1)

    try:
        result = run_generation(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print_final_failure(f"Configuration error: {e}")
        sys.exit(1)

    if not result.success:
        if isinstance(result.error, DuplicatePluginIdentifierError):
            gha_warning("Each --plugin needs a unique ID", title="Duplicate plugin")
        print_final_failure(result.error_message or "Source generation failed")
        sys.exit(1)

    if result.skipped:
        print_final_success("No .proto files found, nothing to generate.")
        return

    print_generation_summary(result)
    print_final_success(f"Sources generated in {result.output_directory}")


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--executable",
    "executables",
    multiple=True,
    help="Additional plugin executable to look up on PATH.",
)
def doctor(executables: tuple[str, ...]) -> None:
    """Show the host platform classifier and which tools are on PATH."""
    try:
        platform_id = classify()
    except UnsupportedPlatformError as e:
        print_final_failure(str(e))
        sys.exit(1)

    statuses = check_all_tools(list(executables))
    data = [("Platform classifier", platform_id.classifier)]
    data.extend((status.name, status.path or "not found") for status in statuses.values())
    print_summary_table("protogen doctor", data, show_if_empty=True)

    if not statuses[PROTOC_TOOL.command].available:
        console.print("[warning]protoc is not on PATH.[/warning] It is only needed for --protoc-version PATH.")
        console.print(get_tool_install_message(PROTOC_TOOL), markup=False)


def main() -> None:
    """Entry point for the protogen command."""
    cli()


if __name__ == "__main__":
    main()
