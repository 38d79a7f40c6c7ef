"""
Tests for the go.dev catalog client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from gvs.exceptions import ArtifactDownloadError, CatalogFetchError, CatalogParseError
from gvs.versions.client import GoDevClient

pytestmark = [pytest.mark.unit, pytest.mark.core]


def _response(status_code=200, json_data=None, json_error=None, chunks=()):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    response.iter_content.return_value = iter(chunks)
    return response


@pytest.fixture
def session(mocker):
    session = requests.Session()
    mocker.patch.object(session, "get")
    return session


@pytest.fixture
def client(session):
    return GoDevClient("https://example.test/dl/", timeout=5, session=session)


class TestGoDevClientUrls:
    """Test URL construction and session setup."""

    def test_catalog_url(self, client):
        assert client.catalog_url == "https://example.test/dl/?mode=json&include=all"

    def test_artifact_url(self, client):
        assert (
            client.artifact_url("go1.21.3.linux-amd64.tar.gz")
            == "https://example.test/dl/go1.21.3.linux-amd64.tar.gz"
        )

    def test_user_agent(self, client, session):
        assert session.headers["User-Agent"].startswith("gvs/")

    def test_default_session(self):
        client = GoDevClient()
        assert isinstance(client.session, requests.Session)
        assert client.base_url == "https://go.dev/dl"
        assert client.timeout == 30


class TestFetchCatalog:
    """Test fetch_catalog."""

    def test_success(self, client, session):
        payload = [{"version": "go1.21.3", "stable": True, "files": []}]
        session.get.return_value = _response(json_data=payload)

        assert client.fetch_catalog() == payload
        session.get.assert_called_once_with(
            "https://example.test/dl/?mode=json&include=all", timeout=5
        )
        session.get.return_value.close.assert_called_once()

    def test_non_success_status(self, client, session):
        session.get.return_value = _response(status_code=503)

        with pytest.raises(CatalogFetchError) as exc_info:
            client.fetch_catalog()

        assert exc_info.value.status_code == 503
        assert exc_info.value.url == client.catalog_url

    def test_transport_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(CatalogFetchError) as exc_info:
            client.fetch_catalog()

        assert exc_info.value.status_code is None
        assert "connection refused" in str(exc_info.value)

    def test_timeout(self, client, session):
        session.get.side_effect = requests.Timeout("timed out")
        with pytest.raises(CatalogFetchError):
            client.fetch_catalog()

    def test_invalid_json(self, client, session):
        session.get.return_value = _response(json_error=ValueError("Expecting value"))
        with pytest.raises(CatalogParseError):
            client.fetch_catalog()

    def test_json_object_instead_of_array(self, client, session):
        session.get.return_value = _response(json_data={"version": "go1.21.3"})
        with pytest.raises(CatalogParseError) as exc_info:
            client.fetch_catalog()
        assert exc_info.value.source == client.catalog_url


class TestDownloadArtifact:
    """Test download_artifact."""

    def test_streams_to_destination(self, client, session, tmp_path):
        session.get.return_value = _response(chunks=[b"abc", b"", b"def"])
        destination = tmp_path / "versions" / "downloaded.tar.gz"

        written = client.download_artifact("go.tar.gz", destination)

        assert written == 6
        assert destination.read_bytes() == b"abcdef"
        session.get.assert_called_once_with(
            "https://example.test/dl/go.tar.gz", stream=True, timeout=5
        )

    def test_overwrites_existing_file(self, client, session, tmp_path):
        destination = tmp_path / "downloaded.tar.gz"
        destination.write_bytes(b"old content that is longer")
        session.get.return_value = _response(chunks=[b"new"])

        client.download_artifact("go.tar.gz", destination)

        assert destination.read_bytes() == b"new"

    def test_non_success_status(self, client, session, tmp_path):
        session.get.return_value = _response(status_code=404)

        with pytest.raises(ArtifactDownloadError) as exc_info:
            client.download_artifact("go.tar.gz", tmp_path / "out")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://example.test/dl/go.tar.gz"
        assert not (tmp_path / "out").exists()

    def test_transport_error(self, client, session, tmp_path):
        session.get.side_effect = requests.ConnectionError("reset")
        with pytest.raises(ArtifactDownloadError):
            client.download_artifact("go.tar.gz", tmp_path / "out")

    def test_error_mid_stream_leaves_partial_file(self, client, session, tmp_path):
        def chunks(chunk_size):
            yield b"partial"
            raise requests.exceptions.ChunkedEncodingError("broken")

        response = _response()
        response.iter_content.side_effect = chunks
        session.get.return_value = response
        destination = tmp_path / "out"

        with pytest.raises(ArtifactDownloadError):
            client.download_artifact("go.tar.gz", destination)

        assert destination.read_bytes() == b"partial"
        response.close.assert_called_once()

    def test_unwritable_destination(self, client, session, tmp_path):
        (tmp_path / "out").mkdir()
        session.get.return_value = _response(chunks=[b"x"])

        with pytest.raises(ArtifactDownloadError) as exc_info:
            client.download_artifact("go.tar.gz", tmp_path / "out")

        assert "could not write" in str(exc_info.value)
