"""Assembly of the protoc command line.

Argument order:
    protoc
    --proto_path=<dir>                      one per source dir, then import dir
    --java_out=[lite:]<out>                 the output directory
    --plugin=protoc-gen-<id>=<path>         per plugin, in declaration order
    --<id>_out=<out>
    --kotlin_out=[lite:]<out>               only when Kotlin is enabled
    --fatal_warnings                        only when warnings are fatal
    <file.proto>...
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .protocol import GenerationRequest, ResolvedBinary


@dataclass(frozen=True)
class InvocationCommand:
    """
    A fully assembled protoc invocation.

    Attributes:
        arguments: Program path followed by its arguments
        working_directory: Directory protoc runs in
        fatal_warnings: Whether warnings fail the run
    """

    arguments: tuple[str, ...]
    working_directory: Path
    fatal_warnings: bool = False

    @property
    def program(self) -> str:
        return self.arguments[0]

    def __str__(self) -> str:
        return " ".join(self.arguments)


class InvocationBuilder:
    """Builds InvocationCommands. Performs no I/O."""

    def build(
        self,
        request: GenerationRequest,
        compiler: ResolvedBinary,
        source_dirs: Sequence[Path],
        import_dirs: Sequence[Path],
        plugins: Mapping[str, ResolvedBinary],
        source_files: Sequence[Path] = (),
    ) -> InvocationCommand:
        """
        Assemble the protoc command for a request.

        Args:
            request: The generation request (output directory and flags)
            compiler: Resolved protoc
            source_dirs: Directories compiled from; also importable
            import_dirs: Additional import-only directories
            plugins: Plugin id to binary, in declaration order
            source_files: .proto files to compile

        Returns:
            Immutable command
        """
        output = str(request.output_directory)
        lite_prefix = "lite:" if request.lite_enabled else ""

        arguments = [str(compiler.path)]
        arguments.extend(f"--proto_path={directory}" for directory in source_dirs)
        arguments.extend(f"--proto_path={directory}" for directory in import_dirs)
        arguments.append(f"--java_out={lite_prefix}{output}")

        for plugin_id, binary in plugins.items():
            arguments.append(f"--plugin=protoc-gen-{plugin_id}={binary.path}")
            arguments.append(f"--{plugin_id}_out={output}")

        if request.kotlin_enabled:
            arguments.append(f"--kotlin_out={lite_prefix}{output}")
        if request.fatal_warnings:
            arguments.append("--fatal_warnings")

        arguments.extend(str(path) for path in source_files)

        return InvocationCommand(
            arguments=tuple(arguments),
            working_directory=request.base_directory,
            fatal_warnings=request.fatal_warnings,
        )
