"""Tests for the public generation API and result types."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from protogen import generation
from protogen._generation.protocol import GenerationRequest, ProjectLayout, SourceRootKind
from protogen._generation.result import DiagnosticLine, GenerationResult, InvocationOutcome, Severity, Stream
from protogen.exceptions import (
    CompilationFailedError,
    CompilerNotFoundError,
    DuplicatePluginIdentifierError,
    PluginNotFoundError,
    PluginResolutionError,
)

REQUEST = GenerationRequest.create("PATH", ProjectLayout(Path("/p")))


class TestGenerateApi(unittest.TestCase):
    """Tests for generate and generate_sources."""

    def setUp(self):
        self.generator = MagicMock()
        patcher = patch.object(generation, "_generator", self.generator)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_generate_delegates(self):
        expected = GenerationResult.skipped_result(SourceRootKind.MAIN, Path("/p/out"))
        self.generator.generate.return_value = expected

        self.assertIs(generation.generate(REQUEST), expected)
        self.generator.generate.assert_called_once_with(REQUEST)

    def test_generate_sources_raises_original_error(self):
        error = CompilerNotFoundError("protoc not found on PATH", specifier="PATH")
        self.generator.generate.return_value = GenerationResult.failure_result(
            SourceRootKind.MAIN, Path("/p/out"), error
        )

        with self.assertRaises(CompilerNotFoundError) as ctx:
            generation.generate_sources(REQUEST)
        self.assertIs(ctx.exception, error)

    def test_generate_sources_without_error_object(self):
        self.generator.generate.return_value = GenerationResult(
            success=False, kind=SourceRootKind.MAIN, output_directory=Path("/p/out"), error_message="broken"
        )

        with self.assertRaises(CompilationFailedError):
            generation.generate_sources(REQUEST)

    def test_generate_sources_returns_success(self):
        expected = GenerationResult.success_result(SourceRootKind.MAIN, Path("/p/out"))
        self.generator.generate.return_value = expected

        self.assertIs(generation.generate_sources(REQUEST), expected)


class TestLazyGenerator(unittest.TestCase):
    def test_created_once(self):
        with patch.object(generation, "_generator", None), patch.object(
            generation, "create_default_generator"
        ) as mock_create:
            first = generation._get_generator()
            second = generation._get_generator()

        mock_create.assert_called_once_with()
        self.assertIs(first, second)


class TestInvocationOutcome(unittest.TestCase):
    def test_severity_views(self):
        outcome = InvocationOutcome(
            exit_code=0,
            lines=(
                DiagnosticLine(Stream.STDERR, "a: warning: x", Severity.WARNING),
                DiagnosticLine(Stream.STDERR, "a:1:1: y", Severity.ERROR),
                DiagnosticLine(Stream.STDOUT, "z"),
            ),
        )
        self.assertEqual(len(outcome.warnings), 1)
        self.assertEqual(len(outcome.errors), 1)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.format_diagnostics(), "a: warning: x\na:1:1: y\nz")

    def test_failure_modes(self):
        self.assertFalse(InvocationOutcome(exit_code=2).success)
        self.assertFalse(InvocationOutcome(exit_code=0, timed_out=True).success)
        self.assertFalse(InvocationOutcome(exit_code=None).success)


class TestGenerationResult(unittest.TestCase):
    def test_failure_requires_message(self):
        with self.assertRaises(ValueError):
            GenerationResult(success=False, kind=SourceRootKind.MAIN, output_directory=Path("/p"))

    def test_failure_result_uses_error_text(self):
        error = DuplicatePluginIdentifierError(["grpc"])
        result = GenerationResult.failure_result(SourceRootKind.TEST, Path("/p"), error)
        self.assertEqual(result.error_message, "Duplicate plugin identifiers: grpc")
        self.assertIs(result.error, error)


class TestExceptions(unittest.TestCase):
    def test_plugin_resolution_error_lists_every_failure(self):
        error = PluginResolutionError(
            [PluginNotFoundError("a", "Plugin 'a': missing"), PluginNotFoundError("b", "Plugin 'b': missing")]
        )
        self.assertEqual(str(error), "Failed to resolve 2 plugin(s):\n  - Plugin 'a': missing\n  - Plugin 'b': missing")
        self.assertEqual([f.plugin_id for f in error.failures], ["a", "b"])


if __name__ == "__main__":
    unittest.main()
