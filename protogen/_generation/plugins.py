"""Resolution of protoc plugins.

Each PluginBean resolves either from dependency coordinates through the
ArtifactResolver or from an executable name on the system path. All beans
of a request resolve concurrently and every failure is reported together.
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from protogen.exceptions import (
    DuplicatePluginIdentifierError,
    PluginNotFoundError,
    PluginResolutionError,
    ResolutionError,
)
from protogen.logging_config import logger
from protogen.tool_checks import check_tool_available

from .platform import HostPlatformClassifier, PlatformClassifier
from .protocol import EXECUTABLE_TYPE, ArtifactCoordinates, ArtifactResolver, PluginBean, ResolvedBinary
from .utils import PathLookup, make_executable

# Upper bound on concurrent plugin lookups
MAX_WORKERS = 8


@dataclass(frozen=True)
class ResolvedPlugin:
    """A plugin id paired with its executable."""

    id: str
    binary: ResolvedBinary


def check_unique_ids(beans: Sequence[PluginBean]) -> None:
    """
    Reject plugin lists that reuse an id.

    Raises:
        DuplicatePluginIdentifierError: If any id occurs more than once
    """
    counts = Counter(bean.id for bean in beans)
    duplicates = sorted(plugin_id for plugin_id, count in counts.items() if count > 1)
    if duplicates:
        raise DuplicatePluginIdentifierError(duplicates)


class PluginLocator:
    """Resolves PluginBeans to executables."""

    def __init__(
        self,
        resolver: ArtifactResolver,
        platform_classifier: Optional[PlatformClassifier] = None,
        path_lookup: PathLookup = check_tool_available,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self._resolver = resolver
        self._platform_classifier = platform_classifier or HostPlatformClassifier()
        self._path_lookup = path_lookup
        self._max_workers = max_workers

    def locate(self, bean: PluginBean) -> ResolvedPlugin:
        """
        Resolve a single plugin.

        Raises:
            PluginNotFoundError: If the artifact or executable does not exist
            UnsupportedPlatformError: If a classifier is needed but the host has none
            BinaryPermissionError: If the binary cannot be made executable
        """
        if bean.dependency is not None:
            binary = self._locate_dependency(bean.id, bean.dependency)
        else:
            binary = self._locate_executable(bean.id, bean.executable_name or "")
        return ResolvedPlugin(id=bean.id, binary=binary)

    def locate_all(self, beans: Sequence[PluginBean]) -> dict[str, ResolvedBinary]:
        """
        Resolve every plugin of a request.

        Ids are checked for uniqueness before any lookup starts. Lookups run
        concurrently; failures are collected rather than stopping at the
        first one.

        Args:
            beans: Plugins in declaration order

        Returns:
            Mapping of plugin id to binary, in declaration order

        Raises:
            DuplicatePluginIdentifierError: If an id is reused
            PluginResolutionError: If one or more plugins failed to resolve
        """
        check_unique_ids(beans)
        if not beans:
            return {}

        logger.info(f"Resolving {len(beans)} plugin(s): {', '.join(bean.id for bean in beans)}")

        workers = min(self._max_workers, len(beans))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="protogen-plugin") as executor:
            futures = [executor.submit(self.locate, bean) for bean in beans]

        resolved: dict[str, ResolvedBinary] = {}
        failures: list[ResolutionError] = []
        for bean, future in zip(beans, futures):
            try:
                plugin = future.result()
            except ResolutionError as e:
                logger.error(f"Plugin '{bean.id}' failed to resolve: {e}")
                failures.append(e)
                continue
            resolved[plugin.id] = plugin.binary

        if failures:
            raise PluginResolutionError(failures)

        return resolved

    def _locate_dependency(self, plugin_id: str, dependency: ArtifactCoordinates) -> ResolvedBinary:
        coordinates = ArtifactCoordinates(
            group_id=dependency.group_id,
            artifact_id=dependency.artifact_id,
            version=dependency.version,
            type=dependency.type or EXECUTABLE_TYPE,
            classifier=dependency.classifier or self._platform_classifier.classify().classifier,
        )

        path = self._resolver.resolve_artifact(coordinates)
        if path is None:
            raise PluginNotFoundError(plugin_id, f"Plugin '{plugin_id}': plugin artifact not found: {coordinates}")

        path = Path(path).absolute()
        make_executable(path)
        logger.info(f"Resolved plugin '{plugin_id}' from {coordinates}: {path}")
        return ResolvedBinary(path=path, source=str(coordinates))

    def _locate_executable(self, plugin_id: str, executable_name: str) -> ResolvedBinary:
        available, found = self._path_lookup(executable_name)
        if not available or not found:
            raise PluginNotFoundError(
                plugin_id,
                f"Plugin '{plugin_id}': plugin executable not found on PATH: {executable_name}",
            )
        path = Path(found).absolute()
        logger.info(f"Resolved plugin '{plugin_id}' from PATH: {path}")
        return ResolvedBinary(path=path, source="PATH")
