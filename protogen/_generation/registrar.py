"""In-memory source root registration."""

import threading
from pathlib import Path

from protogen.logging_config import logger

from .protocol import SourceRootKind


class SourceRootRegistry:
    """
    Default SourceRootRegistrar.

    Keeps the registered roots of each kind in registration order. Paths
    are compared after resolving them to absolute form, so registering the
    same directory twice (even through a different spelling) is a no-op.

    Example:
        registry = SourceRootRegistry()
        registry.register(Path("target/generated-sources/protobuf"), SourceRootKind.MAIN)
        registry.roots(SourceRootKind.MAIN)
    """

    def __init__(self) -> None:
        self._roots: dict[SourceRootKind, list[Path]] = {kind: [] for kind in SourceRootKind}
        self._lock = threading.Lock()

    def register(self, path: Path, kind: SourceRootKind) -> None:
        resolved = Path(path).resolve()
        with self._lock:
            roots = self._roots[kind]
            if resolved in roots:
                logger.debug(f"{kind.value} source root already registered: {resolved}")
                return
            roots.append(resolved)
        logger.info(f"Registered {kind.value} source root: {resolved}")

    def roots(self, kind: SourceRootKind) -> list[Path]:
        """Registered roots of one kind, in registration order."""
        with self._lock:
            return list(self._roots[kind])

    def is_registered(self, path: Path, kind: SourceRootKind) -> bool:
        with self._lock:
            return Path(path).resolve() in self._roots[kind]
