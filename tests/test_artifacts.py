"""Tests for the Maven repository artifact resolver."""

from pathlib import Path
from unittest.mock import MagicMock

import requests

from protogen._generation.artifacts import MavenRepositoryResolver, parse_metadata_versions
from protogen._generation.protocol import protoc_coordinates

METADATA = b"""<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <groupId>com.google.protobuf</groupId>
  <artifactId>protoc</artifactId>
  <versioning>
    <latest>3.9.1</latest>
    <release>3.9.1</release>
    <versions>
      <version>3.5.0</version>
      <version>3.9.1</version>
      <version>4.0.0</version>
    </versions>
  </versioning>
</metadata>
"""

NAMESPACED_METADATA = b"""<?xml version="1.0"?>
<metadata xmlns="http://maven.apache.org/METADATA/1.1.0">
  <versioning><versions><version>1.0</version><version> 1.1 </version></versions></versioning>
</metadata>
"""


def _response(status_code=200, content=b"", chunks=None):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.iter_content.return_value = chunks or [content]
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    return response


class TestParseMetadata:
    def test_versions_in_order(self):
        assert parse_metadata_versions(METADATA) == ["3.5.0", "3.9.1", "4.0.0"]

    def test_namespaced_document(self):
        assert parse_metadata_versions(NAMESPACED_METADATA) == ["1.0", "1.1"]


class TestResolveArtifact:
    def test_local_hit_skips_network(self, tmp_path):
        coords = protoc_coordinates("3.25.1", "linux-x86_64")
        cached = tmp_path / coords.repository_path
        cached.parent.mkdir(parents=True)
        cached.write_bytes(b"binary")
        session = MagicMock()

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.resolve_artifact(coords) == cached.absolute()
        session.get.assert_not_called()

    def test_download_stores_in_local_repository(self, tmp_path):
        coords = protoc_coordinates("3.25.1", "linux-x86_64")
        session = MagicMock()
        session.get.return_value = _response(chunks=[b"bin", b"ary"])

        resolver = MavenRepositoryResolver(
            repository_url="https://repo.example.com/maven2/",
            local_repository=tmp_path,
            session=session,
        )
        path = resolver.resolve_artifact(coords)

        assert path == (tmp_path / coords.repository_path).absolute()
        assert path.read_bytes() == b"binary"
        url = session.get.call_args[0][0]
        assert url == f"https://repo.example.com/maven2/{coords.repository_path}"
        # No temp files left behind
        assert [p.name for p in path.parent.iterdir()] == [path.name]

    def test_not_found_is_a_miss(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status_code=404)

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.resolve_artifact(protoc_coordinates("0.0.1", "linux-x86_64")) is None

    def test_network_error_is_a_miss(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("unreachable")

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.resolve_artifact(protoc_coordinates("3.25.1", "linux-x86_64")) is None

    def test_server_error_is_a_miss(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status_code=500)

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.resolve_artifact(protoc_coordinates("3.25.1", "linux-x86_64")) is None

    def test_offline_never_downloads(self, tmp_path):
        session = MagicMock()
        resolver = MavenRepositoryResolver(local_repository=tmp_path, offline=True, session=session)

        assert resolver.resolve_artifact(protoc_coordinates("3.25.1", "linux-x86_64")) is None
        session.get.assert_not_called()


class TestListAvailableVersions:
    def test_remote_metadata(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(content=METADATA)

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.list_available_versions(protoc_coordinates()) == ["3.5.0", "3.9.1", "4.0.0"]
        assert session.get.call_args[0][0].endswith("com/google/protobuf/protoc/maven-metadata.xml")

    def test_missing_metadata(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status_code=404)

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.list_available_versions(protoc_coordinates()) == []

    def test_invalid_metadata(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(content=b"<metadata><versions>")

        resolver = MavenRepositoryResolver(local_repository=tmp_path, session=session)

        assert resolver.list_available_versions(protoc_coordinates()) == []

    def test_offline_lists_local_directories(self, tmp_path):
        directory = tmp_path / protoc_coordinates().directory
        for version in ("3.9.1", "3.5.0"):
            (directory / version).mkdir(parents=True)
        (directory / "maven-metadata-local.xml").write_text("<metadata/>")

        resolver = MavenRepositoryResolver(local_repository=tmp_path, offline=True, session=MagicMock())

        assert resolver.list_available_versions(protoc_coordinates()) == ["3.5.0", "3.9.1"]

    def test_offline_without_local_directory(self, tmp_path):
        resolver = MavenRepositoryResolver(local_repository=Path(tmp_path) / "missing", offline=True)

        assert resolver.list_available_versions(protoc_coordinates()) == []


class TestSession:
    def test_lazy_session_sends_token(self, tmp_path):
        resolver = MavenRepositoryResolver(local_repository=tmp_path, token="secret")

        assert resolver.session.headers["Authorization"] == "Bearer secret"
        assert resolver.session is resolver.session

    def test_lazy_session_without_token(self, tmp_path):
        resolver = MavenRepositoryResolver(local_repository=tmp_path)

        assert "Authorization" not in resolver.session.headers
