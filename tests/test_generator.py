"""Tests for the source code generator."""

import os
import sys
import textwrap
import threading
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from protogen._generation.compiler import ProtocLocator
from protogen._generation.generator import SourceCodeGenerator, create_default_generator
from protogen._generation.imports import ImportDependencyLocator
from protogen._generation.platform import FixedPlatformClassifier, PlatformId
from protogen._generation.plugins import PluginLocator
from protogen._generation.protocol import (
    ArtifactCoordinates,
    GenerationRequest,
    PluginBean,
    ProjectLayout,
    ResolvedBinary,
    SourceRootKind,
)
from protogen._generation.registrar import SourceRootRegistry
from protogen._generation.result import DiagnosticLine, InvocationOutcome, Severity, Stream
from protogen._generation.runner import ProcessRunner
from protogen.exceptions import (
    CompilationFailedError,
    CompilationTimeoutError,
    CompilerNotFoundError,
    ConfigurationError,
    DuplicatePluginIdentifierError,
    ImportDependencyError,
    OutputDirectoryError,
    PluginNotFoundError,
    PluginResolutionError,
    ProcessLaunchError,
    ResolutionError,
)

PROTOC = ResolvedBinary(Path("/usr/bin/protoc"), source="PATH")
COMMON_PROTOS = ArtifactCoordinates.parse("com.google.api.grpc:proto-google-common-protos:2.29.0")


@pytest.fixture
def project(tmp_path):
    """A project with one .proto file in the default main source directory."""
    sources = tmp_path / "src" / "main" / "protobuf"
    sources.mkdir(parents=True)
    (sources / "greeter.proto").write_text('syntax = "proto3";\nmessage Hello {}\n')
    return tmp_path


def _request(base: Path, **kwargs) -> GenerationRequest:
    return GenerationRequest.create("PATH", ProjectLayout(base), **kwargs)


def _generator(protoc=None, plugins=None, outcome=None, registrar=None, import_locator=None):
    protoc_locator = MagicMock(spec=ProtocLocator)
    if isinstance(protoc, Exception):
        protoc_locator.locate.side_effect = protoc
    else:
        protoc_locator.locate.return_value = protoc or PROTOC

    plugin_locator = MagicMock(spec=PluginLocator)
    if isinstance(plugins, Exception):
        plugin_locator.locate_all.side_effect = plugins
    else:
        plugin_locator.locate_all.return_value = plugins or {}

    runner = MagicMock(spec=ProcessRunner)
    runner.run.return_value = outcome or InvocationOutcome(exit_code=0)

    generator = SourceCodeGenerator(
        protoc_locator=protoc_locator,
        plugin_locator=plugin_locator,
        registrar=registrar or SourceRootRegistry(),
        runner=runner,
        import_locator=import_locator,
    )
    return generator, protoc_locator, plugin_locator, runner


class TestSourceCodeGenerator:
    def test_success_registers_output(self, project):
        registrar = SourceRootRegistry()
        generator, _, _, runner = _generator(registrar=registrar)
        request = _request(project)

        result = generator.generate(request)

        assert result.success
        assert not result.skipped
        assert result.compiler == PROTOC.path
        assert request.output_directory.is_dir()
        assert registrar.roots(SourceRootKind.MAIN) == [request.output_directory.resolve()]

        command = runner.run.call_args[0][0]
        assert command.arguments[0] == "/usr/bin/protoc"
        assert command.arguments[-1] == str(project / "src" / "main" / "protobuf" / "greeter.proto")

    def test_no_sources_is_skipped(self, tmp_path):
        registrar = SourceRootRegistry()
        generator, protoc_locator, plugin_locator, runner = _generator(registrar=registrar)
        request = _request(tmp_path)

        result = generator.generate(request)

        assert result.success
        assert result.skipped
        protoc_locator.locate.assert_not_called()
        plugin_locator.locate_all.assert_not_called()
        runner.run.assert_not_called()
        assert registrar.roots(SourceRootKind.MAIN) == []
        assert not request.output_directory.exists()

    def test_missing_source_directory_is_skipped_over(self, project):
        generator, _, _, runner = _generator()
        request = _request(project, source_directories=[Path("src/main/protobuf"), Path("missing")])

        result = generator.generate(request)

        assert result.success
        command = runner.run.call_args[0][0]
        assert f"--proto_path={project / 'missing'}" not in command.arguments

    def test_duplicate_plugins_fail_before_resolution(self, project):
        generator, protoc_locator, plugin_locator, runner = _generator()
        plugins = [PluginBean.parse("grpc=protoc-gen-grpc"), PluginBean.parse("grpc=protoc-gen-other")]

        result = generator.generate(_request(project, plugins=plugins))

        assert not result.success
        assert isinstance(result.error, DuplicatePluginIdentifierError)
        assert "grpc" in result.error_message
        protoc_locator.locate.assert_not_called()
        plugin_locator.locate_all.assert_not_called()
        runner.run.assert_not_called()

    def test_compiler_failure_reported_first(self, project):
        plugin_error = PluginResolutionError([PluginNotFoundError("grpc", "Plugin 'grpc': missing")])
        generator, _, _, runner = _generator(
            protoc=CompilerNotFoundError("protoc not found on PATH", specifier="PATH"),
            plugins=plugin_error,
        )

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, CompilerNotFoundError)
        runner.run.assert_not_called()

    def test_plugin_failures_are_aggregated(self, project):
        plugin_error = PluginResolutionError(
            [
                PluginNotFoundError("a", "Plugin 'a': plugin executable not found on PATH: protoc-gen-a"),
                PluginNotFoundError("b", "Plugin 'b': plugin executable not found on PATH: protoc-gen-b"),
            ]
        )
        registrar = SourceRootRegistry()
        generator, _, _, runner = _generator(plugins=plugin_error, registrar=registrar)

        result = generator.generate(_request(project))

        assert not result.success
        assert result.error is plugin_error
        assert "protoc-gen-a" in result.error_message
        assert "protoc-gen-b" in result.error_message
        runner.run.assert_not_called()
        assert registrar.roots(SourceRootKind.MAIN) == []

    def test_resolution_runs_in_parallel(self, project):
        barrier = threading.Barrier(2, timeout=5)
        protoc_locator = MagicMock(spec=ProtocLocator)
        plugin_locator = MagicMock(spec=PluginLocator)

        def locate(specifier):
            barrier.wait()
            return PROTOC

        def locate_all(beans):
            barrier.wait()
            return {}

        protoc_locator.locate.side_effect = locate
        plugin_locator.locate_all.side_effect = locate_all
        runner = MagicMock(spec=ProcessRunner)
        runner.run.return_value = InvocationOutcome(exit_code=0)

        generator = SourceCodeGenerator(protoc_locator, plugin_locator, SourceRootRegistry(), runner)

        assert generator.generate(_request(project)).success

    def test_compilation_failure_carries_diagnostics(self, project):
        outcome = InvocationOutcome(
            exit_code=1,
            lines=(DiagnosticLine(Stream.STDERR, 'greeter.proto:2:17: Expected ";".', Severity.ERROR),),
        )
        registrar = SourceRootRegistry()
        generator, _, _, _ = _generator(outcome=outcome, registrar=registrar)

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, CompilationFailedError)
        assert result.error.outcome is outcome
        assert result.outcome is outcome
        assert "exit code 1" in result.error_message
        assert 'greeter.proto:2:17: Expected ";".' in result.error_message
        assert registrar.roots(SourceRootKind.MAIN) == []

    def test_fatal_warnings_failure(self, project):
        outcome = InvocationOutcome(
            exit_code=0,
            lines=(DiagnosticLine(Stream.STDERR, "greeter.proto:1:1: warning: unused import", Severity.WARNING),),
            fatal_warnings=True,
        )
        generator, _, _, _ = _generator(outcome=outcome)

        result = generator.generate(_request(project, fatal_warnings=True))

        assert not result.success
        assert isinstance(result.error, CompilationFailedError)
        assert "warnings are fatal" in result.error_message

    def test_timeout_failure(self, project):
        generator, _, _, _ = _generator(outcome=InvocationOutcome(exit_code=-9, timed_out=True))

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, CompilationTimeoutError)

    def test_launch_failure(self, project):
        generator, _, _, runner = _generator()
        runner.run.side_effect = ProcessLaunchError("Failed to start /usr/bin/protoc: Permission denied")

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, ProcessLaunchError)
        assert result.outcome is None

    def test_main_then_test_on_same_instance(self, project):
        tests = project / "src" / "test" / "protobuf"
        tests.mkdir(parents=True)
        (tests / "fixture.proto").write_text('syntax = "proto3";\n')
        registrar = SourceRootRegistry()
        generator, _, _, _ = _generator(registrar=registrar)

        main = generator.generate(_request(project))
        test = generator.generate(_request(project, kind=SourceRootKind.TEST))
        again = generator.generate(_request(project))

        assert main.success and test.success and again.success
        assert len(registrar.roots(SourceRootKind.MAIN)) == 1
        assert registrar.roots(SourceRootKind.TEST) == [
            (project / "target" / "generated-test-sources" / "protobuf").resolve()
        ]


class TestFailureContainment:
    def test_duplicate_plugins_without_sources_fail(self, tmp_path):
        generator, protoc_locator, plugin_locator, runner = _generator()
        plugins = [PluginBean.parse("grpc=protoc-gen-grpc"), PluginBean.parse("grpc=protoc-gen-other")]

        result = generator.generate(_request(tmp_path, plugins=plugins))

        assert not result.success
        assert not result.skipped
        assert isinstance(result.error, DuplicatePluginIdentifierError)
        protoc_locator.locate.assert_not_called()
        plugin_locator.locate_all.assert_not_called()
        runner.run.assert_not_called()

    def test_output_directory_under_a_file(self, project):
        blocker = project / "blocker"
        blocker.write_text("not a directory")
        generator, _, _, runner = _generator()

        result = generator.generate(_request(project, output_directory=Path("blocker/out")))

        assert not result.success
        assert isinstance(result.error, OutputDirectoryError)
        assert "blocker" in result.error_message
        assert isinstance(result.error.__cause__, OSError)
        runner.run.assert_not_called()

    def test_foreign_compiler_error_is_wrapped(self, project):
        cause = RuntimeError("repository index is corrupt")
        generator, _, _, runner = _generator(protoc=cause)

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, ResolutionError)
        assert result.error.__cause__ is cause
        assert "Failed to resolve protoc" in result.error_message
        runner.run.assert_not_called()

    def test_foreign_plugin_error_is_wrapped(self, project):
        cause = KeyError("classifier")
        generator, _, _, _ = _generator(plugins=cause)

        result = generator.generate(_request(project))

        assert not result.success
        assert isinstance(result.error, ResolutionError)
        assert result.error.__cause__ is cause
        assert "Failed to resolve plugins" in result.error_message


def _jar(path: Path, entries: dict) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


class TestImportDependencies:
    def test_archive_protos_become_import_path(self, project, tmp_path_factory):
        jar = _jar(
            tmp_path_factory.mktemp("m2") / "proto-google-common-protos-2.29.0.jar",
            {
                "google/type/date.proto": 'syntax = "proto3";\npackage google.type;\n',
                "com/google/type/Date.class": b"\xca\xfe\xba\xbe",
            },
        )
        resolver = MagicMock()
        resolver.resolve_artifact.return_value = jar
        generator, _, _, runner = _generator(import_locator=ImportDependencyLocator(resolver))
        request = _request(project, import_paths=[Path("third_party")], import_dependencies=[COMMON_PROTOS])
        seen = {}

        def run(command):
            staging = Path(command.arguments[3].split("=", 1)[1])
            seen["staging"] = staging
            seen["files"] = sorted(p.relative_to(staging).as_posix() for p in staging.rglob("*") if p.is_file())
            return InvocationOutcome(exit_code=0)

        runner.run.side_effect = run

        result = generator.generate(request)

        assert result.success, result.error_message
        resolver.resolve_artifact.assert_called_once_with(COMMON_PROTOS)
        command = runner.run.call_args[0][0]
        assert command.arguments[1] == f"--proto_path={project / 'src' / 'main' / 'protobuf'}"
        assert command.arguments[2] == f"--proto_path={project / 'third_party'}"
        assert command.arguments[4].startswith("--java_out=")
        assert seen["files"] == ["google/type/date.proto"]
        assert not seen["staging"].exists()

    def test_missing_dependency_fails(self, project):
        resolver = MagicMock()
        resolver.resolve_artifact.return_value = None
        generator, _, _, runner = _generator(import_locator=ImportDependencyLocator(resolver))

        result = generator.generate(_request(project, import_dependencies=[COMMON_PROTOS]))

        assert not result.success
        assert isinstance(result.error, ImportDependencyError)
        assert result.error.dependencies == (str(COMMON_PROTOS),)
        runner.run.assert_not_called()

    def test_unreadable_archive_fails(self, project, tmp_path_factory):
        broken = tmp_path_factory.mktemp("m2") / "broken.jar"
        broken.write_bytes(b"not a zip file")
        resolver = MagicMock()
        resolver.resolve_artifact.return_value = broken
        generator, _, _, runner = _generator(import_locator=ImportDependencyLocator(resolver))

        result = generator.generate(_request(project, import_dependencies=[COMMON_PROTOS]))

        assert not result.success
        assert isinstance(result.error, ImportDependencyError)
        runner.run.assert_not_called()

    def test_requires_import_locator(self, project):
        generator, protoc_locator, _, runner = _generator()

        result = generator.generate(_request(project, import_dependencies=[COMMON_PROTOS]))

        assert not result.success
        assert isinstance(result.error, ConfigurationError)
        protoc_locator.locate.assert_not_called()
        runner.run.assert_not_called()

    def test_no_dependencies_adds_no_import_path(self, project):
        resolver = MagicMock()
        generator, _, _, runner = _generator(import_locator=ImportDependencyLocator(resolver))

        assert generator.generate(_request(project)).success

        command = runner.run.call_args[0][0]
        assert sum(arg.startswith("--proto_path=") for arg in command.arguments) == 1
        resolver.resolve_artifact.assert_not_called()


@pytest.mark.skipif(os.name == "nt", reason="uses a shebang script as protoc")
class TestEndToEnd:
    def test_fake_protoc_writes_sources(self, project, tmp_path_factory):
        bin_dir = tmp_path_factory.mktemp("bin")
        protoc = bin_dir / "protoc"
        protoc.write_text(
            f"#!{sys.executable}\n"
            + textwrap.dedent(
                """
                import sys
                from pathlib import Path
                out = next(a.split("=", 1)[1] for a in sys.argv if a.startswith("--java_out="))
                for arg in sys.argv[1:]:
                    if arg.endswith(".proto"):
                        Path(out, Path(arg).stem + ".java").write_text("// generated")
                print("compiled", len([a for a in sys.argv if a.endswith(".proto")]), "file(s)")
                """
            )
        )
        protoc.chmod(0o755)

        classifier = FixedPlatformClassifier(PlatformId("linux", "x86_64"))
        resolver = MagicMock()
        registrar = SourceRootRegistry()
        generator = SourceCodeGenerator(
            protoc_locator=ProtocLocator(resolver, classifier, path_lookup=lambda cmd: (True, str(protoc))),
            plugin_locator=PluginLocator(resolver, classifier),
            registrar=registrar,
            runner=ProcessRunner(timeout=60),
        )
        request = _request(project)

        result = generator.generate(request)

        assert result.success, result.error_message
        assert (request.output_directory / "greeter.java").read_text() == "// generated"
        assert registrar.roots(SourceRootKind.MAIN) == [request.output_directory.resolve()]
        resolver.resolve_artifact.assert_not_called()


class TestCreateDefaultGenerator:
    def test_wires_default_collaborators(self, tmp_path):
        generator = create_default_generator(local_repository=tmp_path, offline=True, timeout=30)

        assert isinstance(generator, SourceCodeGenerator)
        assert isinstance(generator.registrar, SourceRootRegistry)

    def test_uses_given_registrar(self, tmp_path):
        registrar = SourceRootRegistry()

        generator = create_default_generator(local_repository=tmp_path, registrar=registrar)

        assert generator.registrar is registrar

    def test_repository_token_reaches_resolver(self, tmp_path):
        generator = create_default_generator(local_repository=tmp_path, repository_token="s3cr3t-token")

        assert generator._protoc_locator._resolver._token == "s3cr3t-token"
        assert generator._import_locator._resolver is generator._protoc_locator._resolver
