"""Source code generator and factory functions."""

import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from protogen.exceptions import (
    CompilationFailedError,
    CompilationTimeoutError,
    ConfigurationError,
    OutputDirectoryError,
    ProtogenError,
    ResolutionError,
)
from protogen.logging_config import logger

from .artifacts import MAVEN_CENTRAL_URL, MavenRepositoryResolver
from .command import InvocationBuilder
from .compiler import ProtocLocator
from .imports import ImportDependencyLocator, extract_proto_files
from .platform import HostPlatformClassifier
from .plugins import PluginLocator, check_unique_ids
from .protocol import GenerationRequest, ResolvedBinary, SourceRootRegistrar
from .registrar import SourceRootRegistry
from .result import GenerationResult, InvocationOutcome
from .runner import ProcessRunner
from .utils import find_proto_sources

# Compiler, plugins and import dependencies resolve side by side
RESOLUTION_WORKERS = 3


def create_default_generator(
    repository_url: str = MAVEN_CENTRAL_URL,
    local_repository: Optional[Path] = None,
    offline: bool = False,
    timeout: Optional[float] = None,
    registrar: Optional[SourceRootRegistrar] = None,
    repository_token: Optional[str] = None,
) -> "SourceCodeGenerator":
    """
    Create a SourceCodeGenerator with the default collaborators.

    All locators share one Maven resolver and one host classifier. Roots
    are registered in an in-memory SourceRootRegistry unless a registrar
    is given.

    Args:
        repository_url: Remote Maven repository for protoc and plugin artifacts
        local_repository: Local artifact cache (default: ~/.m2/repository)
        offline: Resolve from the local cache only
        timeout: Seconds before protoc is killed (None = no limit)
        registrar: Build model hook for generated source roots
        repository_token: Bearer token for an authenticated repository

    Returns:
        Configured SourceCodeGenerator
    """
    resolver = MavenRepositoryResolver(
        repository_url=repository_url,
        local_repository=local_repository,
        offline=offline,
        token=repository_token,
    )
    classifier = HostPlatformClassifier()

    return SourceCodeGenerator(
        protoc_locator=ProtocLocator(resolver, classifier),
        plugin_locator=PluginLocator(resolver, classifier),
        registrar=registrar or SourceRootRegistry(),
        runner=ProcessRunner(timeout=timeout),
        import_locator=ImportDependencyLocator(resolver),
    )


class SourceCodeGenerator:
    """
    Generates sources from .proto files for one build.

    Example:
        generator = create_default_generator()
        result = generator.generate(GenerationRequest.create("3.25.1", ProjectLayout(Path.cwd())))
        if not result.success:
            print(result.error_message)
    """

    def __init__(
        self,
        protoc_locator: ProtocLocator,
        plugin_locator: PluginLocator,
        registrar: SourceRootRegistrar,
        runner: Optional[ProcessRunner] = None,
        builder: Optional[InvocationBuilder] = None,
        import_locator: Optional[ImportDependencyLocator] = None,
    ) -> None:
        self._protoc_locator = protoc_locator
        self._plugin_locator = plugin_locator
        self._registrar = registrar
        self._runner = runner or ProcessRunner()
        self._builder = builder or InvocationBuilder()
        self._import_locator = import_locator

    @property
    def registrar(self) -> SourceRootRegistrar:
        return self._registrar

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Compile the request's .proto files.

        Args:
            request: What to compile and where to put it

        Returns:
            GenerationResult; failures carry the ProtogenError that caused them
        """
        logger.info(
            f"Generating {request.kind.value} sources: protoc={request.protoc_version}, "
            f"plugins={len(request.plugins)}, output={request.output_directory}"
        )

        try:
            return self._generate(request)
        except ProtogenError as e:
            logger.error(f"Source generation failed: {e}")
            return GenerationResult.failure_result(
                kind=request.kind,
                output_directory=request.output_directory,
                error=e,
                outcome=getattr(e, "outcome", None),
            )

    def _generate(self, request: GenerationRequest) -> GenerationResult:
        check_unique_ids(request.plugins)
        if request.import_dependencies and self._import_locator is None:
            raise ConfigurationError("Import dependencies were requested but no import locator is configured")

        source_files = find_proto_sources(request.source_directories)
        if not source_files:
            logger.info(f"No .proto files found in {', '.join(map(str, request.source_directories))}, skipping")
            return GenerationResult.skipped_result(request.kind, request.output_directory)

        logger.info(f"Found {len(source_files)} .proto file(s)")

        compiler, plugins, archives = self._resolve(request)

        try:
            request.output_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(f"Cannot create output directory {request.output_directory}: {e}") from e

        staging = tempfile.TemporaryDirectory(prefix="protogen-imports-") if archives else nullcontext()
        with staging as staging_dir:
            import_dirs = list(request.import_paths)
            if staging_dir is not None:
                extract_proto_files(archives, Path(staging_dir))
                import_dirs.append(Path(staging_dir))

            command = self._builder.build(
                request,
                compiler,
                source_dirs=[d for d in request.source_directories if d.is_dir()],
                import_dirs=import_dirs,
                plugins=plugins,
                source_files=source_files,
            )
            outcome = self._runner.run(command)

        if not outcome.success:
            raise _failure_for(outcome)

        self._registrar.register(request.output_directory, request.kind)
        logger.info(f"Generated {request.kind.value} sources in {request.output_directory}")

        return GenerationResult.success_result(
            kind=request.kind,
            output_directory=request.output_directory,
            outcome=outcome,
            compiler=compiler.path,
            plugins={plugin_id: binary.path for plugin_id, binary in plugins.items()},
        )

    def _resolve(self, request: GenerationRequest) -> tuple[ResolvedBinary, dict[str, ResolvedBinary], list[Path]]:
        """Resolve compiler, plugins and import archives concurrently; compiler errors are reported first."""
        with ThreadPoolExecutor(max_workers=RESOLUTION_WORKERS, thread_name_prefix="protogen-resolve") as executor:
            compiler_future = executor.submit(self._protoc_locator.locate, request.protoc_version)
            plugins_future = executor.submit(self._plugin_locator.locate_all, request.plugins)
            imports_future: Optional[Future] = None
            if request.import_dependencies and self._import_locator is not None:
                imports_future = executor.submit(self._import_locator.locate_all, request.import_dependencies)

        for what, future in (
            ("protoc", compiler_future),
            ("plugins", plugins_future),
            ("import dependencies", imports_future),
        ):
            if future is not None:
                _raise_resolution_failure(what, future.exception())

        archives = imports_future.result() if imports_future is not None else []
        return compiler_future.result(), plugins_future.result(), archives


def _raise_resolution_failure(what: str, error: Optional[BaseException]) -> None:
    if error is None:
        return
    if isinstance(error, ProtogenError) or not isinstance(error, Exception):
        raise error
    # Raised by an ArtifactResolver outside protogen
    raise ResolutionError(f"Failed to resolve {what}: {error}") from error


def _failure_for(outcome: InvocationOutcome) -> ProtogenError:
    diagnostics = outcome.format_diagnostics()
    details = f"\n{diagnostics}" if diagnostics else ""

    if outcome.timed_out:
        return CompilationTimeoutError(f"protoc timed out and was killed{details}", outcome)
    if outcome.failed_on_warnings:
        return CompilationFailedError(
            f"protoc reported {len(outcome.warnings)} warning(s) and warnings are fatal{details}",
            outcome,
        )
    return CompilationFailedError(f"protoc failed with exit code {outcome.exit_code}{details}", outcome)
