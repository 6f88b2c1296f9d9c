"""Import-only .proto files shipped inside dependency archives.

Libraries such as com.google.api.grpc:proto-google-common-protos publish
their .proto files inside the jar next to the compiled classes. Those jars
are resolved through the ArtifactResolver and their .proto entries are
extracted into a staging directory that protoc sees as an import path only:
the files can be imported but no code is generated for them.
"""

import zipfile
from pathlib import Path, PurePosixPath
from typing import Sequence

from protogen.exceptions import ImportDependencyError
from protogen.logging_config import logger

from .protocol import ArtifactCoordinates, ArtifactResolver

PROTO_SUFFIX = ".proto"


class ImportDependencyLocator:
    """Resolves import dependencies to archives on disk."""

    def __init__(self, resolver: ArtifactResolver) -> None:
        self._resolver = resolver

    def locate_all(self, dependencies: Sequence[ArtifactCoordinates]) -> list[Path]:
        """
        Resolve every import dependency of a request.

        Coordinates without a type resolve as jars. Every dependency is looked
        up before failing so all missing ones are reported together.

        Args:
            dependencies: Coordinates in declaration order

        Returns:
            Absolute archive paths, in declaration order

        Raises:
            ImportDependencyError: If one or more dependencies do not exist
        """
        archives: list[Path] = []
        missing: list[str] = []

        for dependency in dependencies:
            path = self._resolver.resolve_artifact(dependency)
            if path is None:
                logger.error(f"Import dependency not found: {dependency}")
                missing.append(str(dependency))
                continue
            path = Path(path).absolute()
            logger.debug(f"Resolved import dependency {dependency}: {path}")
            archives.append(path)

        if missing:
            raise ImportDependencyError(f"Import dependency not found: {', '.join(missing)}", dependencies=missing)

        return archives


def extract_proto_files(archives: Sequence[Path], destination: Path) -> list[PurePosixPath]:
    """
    Extract the .proto entries of each archive below destination.

    Entry paths are kept so that imports such as "google/type/date.proto"
    resolve. When two archives ship the same entry the first one wins, the
    same way protoc picks the first matching --proto_path. Entries that
    would land outside destination are skipped.

    Args:
        archives: Jar or zip files, in declaration order
        destination: Existing staging directory

    Returns:
        Sorted archive-relative paths of the extracted files

    Raises:
        ImportDependencyError: If an archive cannot be read
    """
    extracted: dict[PurePosixPath, Path] = {}

    for archive in archives:
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    if info.is_dir() or not info.filename.endswith(PROTO_SUFFIX):
                        continue

                    relative = PurePosixPath(info.filename)
                    if relative.is_absolute() or ".." in relative.parts or ":" in info.filename:
                        logger.warning(f"Skipping unsafe entry {info.filename} in {archive}")
                        continue
                    if relative in extracted:
                        logger.debug(f"{relative} in {archive} is shadowed by {extracted[relative]}")
                        continue

                    target = destination.joinpath(*relative.parts)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(zf.read(info))
                    extracted[relative] = archive
        except (zipfile.BadZipFile, OSError) as e:
            raise ImportDependencyError(
                f"Cannot read .proto files from {archive}: {e}", dependencies=[str(archive)]
            ) from e

    logger.info(f"Extracted {len(extracted)} .proto file(s) from {len(archives)} import dependencies")
    return sorted(extracted)
