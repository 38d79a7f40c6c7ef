"""
go.dev Download Catalog Client

This module implements the CatalogSource capability on top of requests. It
fetches the JSON release list and streams artifacts to disk. There is no
retry: a transport error or a non-success status fails the call.
"""

import os
import time
from typing import Any, Dict, List, Optional

import requests

from gvs.constants import (
    CATALOG_QUERY,
    DEFAULT_BASE_URL,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
)
from gvs.exceptions import ArtifactDownloadError, CatalogFetchError, CatalogParseError
from gvs.log_utils import logger
from gvs.utils import format_size, get_user_agent

from .interfaces import CatalogSource, Pathish


class GoDevClient(CatalogSource):
    """
    Talks to the go.dev download endpoint.

    Both the catalog and the artifacts live under the same base URL:
    `{base_url}/?mode=json&include=all` returns the catalog and
    `{base_url}/{filename}` returns an archive.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Parameters:
            base_url (str): Base URL of the download service, without trailing slash.
            timeout (float): Seconds to wait for the server on each request.
            session (Optional[requests.Session]): Session to use; a new one is created when omitted.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = get_user_agent()

    @property
    def catalog_url(self) -> str:
        return f"{self.base_url}/{CATALOG_QUERY}"

    def artifact_url(self, filename: str) -> str:
        return f"{self.base_url}/{filename}"

    def fetch_catalog(self) -> List[Dict[str, Any]]:
        url = self.catalog_url
        logger.debug(f"Fetching version catalog from {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise CatalogFetchError(
                "could not fetch versions", url=url, details=str(e)
            ) from e

        try:
            if response.status_code != 200:
                raise CatalogFetchError(
                    f"request failed with status {response.status_code}",
                    status_code=response.status_code,
                    url=url,
                )
            try:
                payload = response.json()
            except ValueError as e:
                raise CatalogParseError(
                    "invalid catalog response", source=url, details=str(e)
                ) from e
        finally:
            response.close()

        if not isinstance(payload, list):
            raise CatalogParseError(
                "invalid catalog response",
                source=url,
                details=f"expected a JSON array, got {type(payload).__name__}",
            )

        logger.debug(f"Fetched {len(payload)} catalog entries")
        return payload

    def download_artifact(self, filename: str, destination: Pathish) -> int:
        url = self.artifact_url(filename)
        logger.debug(f"Downloading {url} to {destination}")
        start_time = time.time()

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise ArtifactDownloadError(
                f"could not download {filename}", url=url, details=str(e)
            ) from e

        downloaded_bytes = 0
        try:
            if response.status_code != 200:
                raise ArtifactDownloadError(
                    f"request failed with status {response.status_code}",
                    status_code=response.status_code,
                    url=url,
                )

            parent_dir = os.path.dirname(os.fspath(destination))
            if parent_dir:
                os.makedirs(parent_dir, exist_ok=True)

            # A partially written file stays behind on failure
            with open(destination, "wb") as file:
                for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                    if chunk:
                        file.write(chunk)
                        downloaded_bytes += len(chunk)
        except requests.RequestException as e:
            raise ArtifactDownloadError(
                f"could not download {filename}", url=url, details=str(e)
            ) from e
        except OSError as e:
            raise ArtifactDownloadError(
                f"could not write {filename}", url=url, details=str(e)
            ) from e
        finally:
            response.close()

        logger.debug("Download elapsed time: %.2fs for %s", time.time() - start_time, url)
        logger.info(f"Downloaded: {filename} ({format_size(downloaded_bytes)})")
        return downloaded_bytes
