"""Host platform detection for selecting native binary classifiers.

Classifier names follow the naming protoc and most protoc plugins are
published under on Maven Central, e.g. "linux-x86_64" or "osx-aarch_64".
"""

import platform
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from protogen.exceptions import UnsupportedPlatformError
from protogen.logging_config import logger

_OS_FAMILIES = {
    "linux": "linux",
    "darwin": "osx",
    "macos": "osx",
    "windows": "windows",
}

_ARCHITECTURES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86_32",
    "i486": "x86_32",
    "i586": "x86_32",
    "i686": "x86_32",
    "x86": "x86_32",
    "aarch64": "aarch_64",
    "arm64": "aarch_64",
    "ppc64le": "ppcle_64",
    "s390x": "s390_64",
}


@dataclass(frozen=True)
class PlatformId:
    """Normalized OS family and CPU architecture."""

    os_family: str
    architecture: str

    @property
    def classifier(self) -> str:
        return f"{self.os_family}-{self.architecture}"

    @property
    def is_windows(self) -> bool:
        return self.os_family == "windows"

    def __str__(self) -> str:
        return self.classifier


def classify(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformId:
    """
    Derive the platform identity of the host (or of the given values).

    Args:
        system: OS name as reported by platform.system(); defaults to the host
        machine: CPU name as reported by platform.machine(); defaults to the host

    Returns:
        PlatformId with normalized names

    Raises:
        UnsupportedPlatformError: If either value has no known mapping
    """
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()

    os_family = _OS_FAMILIES.get(system.strip().lower())
    if os_family is None:
        raise UnsupportedPlatformError(f"Unsupported operating system: '{system}'")

    architecture = _ARCHITECTURES.get(machine.strip().lower())
    if architecture is None:
        raise UnsupportedPlatformError(f"Unsupported CPU architecture: '{machine}'")

    return PlatformId(os_family, architecture)


class PlatformClassifier(Protocol):
    """Anything that can report a PlatformId."""

    def classify(self) -> PlatformId: ...


class HostPlatformClassifier:
    """Classifies the host once and returns the same answer afterwards."""

    def __init__(self) -> None:
        self._platform: Optional[PlatformId] = None
        self._lock = threading.Lock()

    def classify(self) -> PlatformId:
        if self._platform is None:
            with self._lock:
                if self._platform is None:
                    self._platform = classify()
                    logger.debug(f"Host platform classified as {self._platform.classifier}")
        return self._platform


class FixedPlatformClassifier:
    """Always reports the given platform."""

    def __init__(self, platform_id: PlatformId) -> None:
        self._platform = platform_id

    def classify(self) -> PlatformId:
        return self._platform
