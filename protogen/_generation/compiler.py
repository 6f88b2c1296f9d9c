"""Resolution of the protoc binary.

The version specifier decides the strategy:
- "PATH": look up protoc on the system path
- exact version: fetch com.google.protobuf:protoc:<version>:exe:<classifier>
- version range: pick the newest published version in range, then fetch it
"""

import threading
from pathlib import Path
from typing import Optional

from protogen.exceptions import CompilerNotFoundError
from protogen.logging_config import logger
from protogen.tool_checks import PROTOC_TOOL, check_tool_available, get_tool_install_message

from .platform import HostPlatformClassifier, PlatformClassifier
from .protocol import (
    PROTOC_EXECUTABLE,
    ArtifactResolver,
    ResolvedBinary,
    VersionSpecifier,
    protoc_coordinates,
)
from .utils import PathLookup, make_executable
from .versions import VersionRange, select_version


class ProtocLocator:
    """
    Resolves a VersionSpecifier to an executable protoc.

    Downloaded resolutions are cached per (specifier, classifier) for the
    lifetime of the locator. PATH lookups are repeated every time.
    """

    def __init__(
        self,
        resolver: ArtifactResolver,
        platform_classifier: Optional[PlatformClassifier] = None,
        path_lookup: PathLookup = check_tool_available,
    ) -> None:
        self._resolver = resolver
        self._platform_classifier = platform_classifier or HostPlatformClassifier()
        self._path_lookup = path_lookup
        self._cache: dict[tuple[VersionSpecifier, str], ResolvedBinary] = {}
        self._lock = threading.Lock()

    def locate(self, specifier: VersionSpecifier) -> ResolvedBinary:
        """
        Resolve protoc for the given specifier.

        Raises:
            CompilerNotFoundError: If no matching binary exists
            UnsupportedPlatformError: If the host has no classifier
            BinaryPermissionError: If the binary cannot be made executable
        """
        if specifier.is_path:
            return self._locate_on_path()

        classifier = self._platform_classifier.classify().classifier
        cache_key = (specifier, classifier)

        with self._lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Using previously resolved protoc {specifier}: {cached.path}")
                return cached

            binary = self._locate_artifact(specifier, classifier)
            self._cache[cache_key] = binary
            return binary

    def _locate_on_path(self) -> ResolvedBinary:
        available, found = self._path_lookup(PROTOC_EXECUTABLE)
        if not available or not found:
            raise CompilerNotFoundError(
                f"protoc not found on PATH.\n{get_tool_install_message(PROTOC_TOOL)}",
                specifier="PATH",
            )
        path = Path(found).absolute()
        logger.info(f"Using protoc from PATH: {path}")
        return ResolvedBinary(path=path, source="PATH")

    def _locate_artifact(self, specifier: VersionSpecifier, classifier: str) -> ResolvedBinary:
        version = self._select_version(specifier) if specifier.is_range else specifier.value
        coordinates = protoc_coordinates(version, classifier)

        path = self._resolver.resolve_artifact(coordinates)
        if path is None:
            raise CompilerNotFoundError(
                f"protoc artifact not found: {coordinates}",
                specifier=specifier.value,
            )

        path = Path(path).absolute()
        make_executable(path)
        logger.info(f"Resolved protoc {version} ({classifier}): {path}")
        return ResolvedBinary(path=path, source=str(coordinates))

    def _select_version(self, specifier: VersionSpecifier) -> str:
        version_range = VersionRange.parse(specifier.value)
        catalog = self._resolver.list_available_versions(protoc_coordinates())
        version = select_version(version_range, catalog)
        if version is None:
            raise CompilerNotFoundError(
                f"No protoc version in range {specifier.value} (checked {len(catalog)} published versions)",
                specifier=specifier.value,
            )
        logger.info(f"Selected protoc {version} for range {specifier.value}")
        return version
