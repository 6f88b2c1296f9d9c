"""Artifact resolution against a Maven repository.

Resolution order:
1. Check the local repository (Maven layout, ~/.m2/repository by default)
2. Download from the remote repository and store in the local repository
3. Report a miss (None) - callers decide how fatal that is

Version catalogs come from the remote maven-metadata.xml, or from the
version directories in the local repository when running offline.
"""

import os
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

import requests

from protogen.http_client import DEFAULT_TIMEOUT, create_session
from protogen.logging_config import logger

from .protocol import ArtifactCoordinates

MAVEN_CENTRAL_URL = "https://repo.maven.apache.org/maven2"
DEFAULT_LOCAL_REPOSITORY = Path.home() / ".m2" / "repository"

# Download chunk size in bytes
CHUNK_SIZE = 64 * 1024


class MavenRepositoryResolver:
    """
    ArtifactResolver backed by a remote Maven repository and a local cache.

    Example:
        resolver = MavenRepositoryResolver()
        path = resolver.resolve_artifact(protoc_coordinates("3.25.1", "linux-x86_64"))
    """

    def __init__(
        self,
        repository_url: str = MAVEN_CENTRAL_URL,
        local_repository: Optional[Path] = None,
        offline: bool = False,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        token: Optional[str] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            repository_url: Base URL of the remote repository
            local_repository: Directory holding downloaded artifacts
            offline: Never contact the remote repository
            session: Optional requests.Session (created lazily if omitted)
            timeout: Request timeout in seconds
            token: Bearer token sent to the remote repository
        """
        self._repository_url = repository_url.rstrip("/")
        self._local_repository = Path(local_repository) if local_repository else DEFAULT_LOCAL_REPOSITORY
        self._offline = offline
        self._session = session
        self._timeout = timeout
        self._token = token

    @property
    def local_repository(self) -> Path:
        return self._local_repository

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = create_session(token=self._token)
        return self._session

    def resolve_artifact(self, coordinates: ArtifactCoordinates) -> Optional[Path]:
        """
        Resolve coordinates to a file in the local repository.

        Args:
            coordinates: Fully specified coordinates (version required)

        Returns:
            Absolute path to the artifact, or None if it does not exist
        """
        local_path = self._local_repository / coordinates.repository_path
        if local_path.is_file():
            logger.debug(f"Using cached artifact {coordinates}: {local_path}")
            return local_path.absolute()

        if self._offline:
            logger.debug(f"Artifact {coordinates} not in local repository and offline mode is enabled")
            return None

        url = f"{self._repository_url}/{coordinates.repository_path}"
        if not self._download(url, local_path):
            return None

        logger.info(f"Downloaded {coordinates} to {local_path}")
        return local_path.absolute()

    def list_available_versions(self, coordinates: ArtifactCoordinates) -> list[str]:
        """
        List published versions of an artifact.

        Args:
            coordinates: Coordinates; version, type and classifier are ignored

        Returns:
            Version strings in repository order (may be empty)
        """
        if self._offline:
            return self._list_local_versions(coordinates)

        url = f"{self._repository_url}/{coordinates.directory}/maven-metadata.xml"
        try:
            response = self.session.get(url, timeout=self._timeout)
            if response.status_code == 404:
                logger.debug(f"No metadata published at {url}")
                return []
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to fetch version metadata from {url}: {e}")
            return []

        try:
            return parse_metadata_versions(response.content)
        except ET.ParseError as e:
            logger.warning(f"Invalid version metadata at {url}: {e}")
            return []

    def _list_local_versions(self, coordinates: ArtifactCoordinates) -> list[str]:
        directory = self._local_repository / coordinates.directory
        if not directory.is_dir():
            return []
        return sorted(child.name for child in directory.iterdir() if child.is_dir())

    def _download(self, url: str, destination: Path) -> bool:
        """Download url to destination atomically. Returns False on a miss."""
        logger.debug(f"Downloading {url}")
        try:
            with self.session.get(url, timeout=self._timeout, stream=True) as response:
                if response.status_code == 404:
                    logger.debug(f"Artifact not found at {url}")
                    return False
                response.raise_for_status()

                destination.parent.mkdir(parents=True, exist_ok=True)
                fd, temp_name = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.", suffix=".part")
                try:
                    with os.fdopen(fd, "wb") as f:
                        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                            if chunk:
                                f.write(chunk)
                    os.replace(temp_name, destination)
                except BaseException:
                    Path(temp_name).unlink(missing_ok=True)
                    raise
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to download {url}: {e}")
            return False
        except OSError as e:
            logger.warning(f"Failed to store {url} at {destination}: {e}")
            return False

        return True


def parse_metadata_versions(content: bytes) -> list[str]:
    """
    Extract the version list from a maven-metadata.xml document.

    Raises:
        xml.etree.ElementTree.ParseError: If the document is not valid XML
    """
    root = ET.fromstring(content)
    versions: list[str] = []
    for element in root.iter():
        if _local_name(element.tag) != "versions":
            continue
        for child in element:
            if _local_name(child.tag) == "version" and child.text and child.text.strip():
                versions.append(child.text.strip())
    return versions


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
