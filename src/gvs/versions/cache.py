"""
Catalog Cache for the gvs Version Pipeline

This module keeps a local copy of the remote release catalog and decides,
from the cache file's modification time, whether it is still fresh.
"""

import json
from typing import Any, List, Optional

from gvs.constants import DEFAULT_CACHE_TTL_HOURS, DEFAULT_VERSION_PREFIX
from gvs.exceptions import CacheWriteError, CatalogError, CatalogParseError
from gvs.log_utils import logger

from .interfaces import CatalogEntry, CatalogSource, Clock, FileSystem, Pathish


def parse_catalog(
    payload: Any, source: str, prefix: str = DEFAULT_VERSION_PREFIX
) -> List[CatalogEntry]:
    """
    Convert a decoded catalog JSON document into catalog entries.

    The remote order (newest release first) is preserved.

    Parameters:
        payload (Any): The decoded JSON document; must be an array of release objects.
        source (str): Where the payload came from, for error messages.
        prefix (str): Runtime prefix stripped from versions for display.

    Returns:
        List[CatalogEntry]: One entry per release.

    Raises:
        CatalogParseError: If the document is not an array or an element is malformed.
    """
    if not isinstance(payload, list):
        raise CatalogParseError(
            "invalid catalog",
            source=source,
            details=f"expected a JSON array, got {type(payload).__name__}",
        )

    entries: List[CatalogEntry] = []
    for index, item in enumerate(payload):
        try:
            entries.append(CatalogEntry.from_dict(item, prefix=prefix))
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogParseError(
                "invalid catalog",
                source=source,
                details=f"entry {index}: {e}",
            ) from e
    return entries


class CatalogCache:
    """
    TTL-bounded on-disk copy of the release catalog.

    The cache is fresh while fewer than `ttl_hours` hours have passed since the
    cache file was last modified. A stale or missing cache, or an explicit
    refresh, triggers a fetch that overwrites the file. A malformed cache file
    is reported as an error and never repaired behind the caller's back.
    """

    def __init__(
        self,
        source: CatalogSource,
        fs: FileSystem,
        clock: Clock,
        cache_file: Pathish,
        ttl_hours: float = DEFAULT_CACHE_TTL_HOURS,
        prefix: str = DEFAULT_VERSION_PREFIX,
    ):
        """
        Initialize the cache.

        Parameters:
            source (CatalogSource): Remote catalog collaborator.
            fs (FileSystem): File system capability used for the cache file.
            clock (Clock): Time source for the staleness check.
            cache_file (Pathish): Location of the cached catalog bytes.
            ttl_hours (float): Age in hours after which the cache is stale.
            prefix (str): Runtime prefix stripped from versions for display.
        """
        self.source = source
        self.fs = fs
        self.clock = clock
        self.cache_file = cache_file
        self.ttl_hours = ttl_hours
        self.prefix = prefix

    def age_hours(self) -> Optional[float]:
        """
        Return how many hours ago the cache file was written.

        Returns:
            Optional[float]: The age in hours, or None when there is no readable cache file.
        """
        if not self.fs.exists(self.cache_file):
            return None
        try:
            modified = self.fs.modified_time(self.cache_file)
        except OSError as e:
            logger.debug(f"Could not stat cache file {self.cache_file}: {e}")
            return None
        return self.clock.hours_since(modified)

    def is_fresh(self) -> bool:
        """Return whether a cache file exists and is younger than the TTL."""
        age = self.age_hours()
        return age is not None and age < self.ttl_hours

    def fetch_or_load(self, force_refresh: bool = False) -> List[CatalogEntry]:
        """
        Return the catalog, from the cache when fresh or from the remote source otherwise.

        Parameters:
            force_refresh (bool): Ignore the cache and fetch the catalog again.

        Returns:
            List[CatalogEntry]: The catalog in remote order (newest first).

        Raises:
            CatalogFetchError: If the remote fetch fails; an existing cache file is left untouched.
            CatalogParseError: If the fetched or cached catalog is malformed.
            CacheWriteError: If the fetched catalog cannot be written to the cache file.
        """
        if force_refresh or not self.is_fresh():
            if force_refresh:
                logger.debug("Refreshing version catalog on request")
            else:
                logger.debug(f"Version catalog cache at {self.cache_file} is missing or stale")
            return self._refresh()
        return self._load()

    def _refresh(self) -> List[CatalogEntry]:
        payload = self.source.fetch_catalog()
        entries = parse_catalog(payload, source="remote catalog", prefix=self.prefix)

        body = json.dumps([entry.to_dict() for entry in entries]).encode("utf-8")
        try:
            self.fs.write_bytes(self.cache_file, body)
        except OSError as e:
            raise CacheWriteError(
                "could not store versions", path=str(self.cache_file), details=str(e)
            ) from e

        logger.debug(f"Cached {len(entries)} versions in {self.cache_file}")
        return entries

    def _load(self) -> List[CatalogEntry]:
        try:
            body = self.fs.read_bytes(self.cache_file)
        except OSError as e:
            raise CatalogError(
                f"could not read cached versions from {self.cache_file}", details=str(e)
            ) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise CatalogParseError(
                "invalid cached catalog", source=str(self.cache_file), details=str(e)
            ) from e

        entries = parse_catalog(payload, source=str(self.cache_file), prefix=self.prefix)
        logger.debug(f"Using {len(entries)} cached versions from {self.cache_file}")
        return entries
