"""
Speaker Photo Cache

Disk cache of speaker photos keyed by speaker uuid.

PRINCIPLES:
===========
1. One file per speaker: <cache_dir>/<uuid>.dat
2. A cached file is never re-downloaded (until purged out-of-band)
3. A missing photo never aborts a sync - errors are logged and swallowed
4. A blank photo URL is a no-op, not an error
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional, Union
import logging
import os

import httpx

from .contracts import PHOTO_SUFFIX, is_safe_id
from .fetcher import TEMP_SUFFIX, discard, write_stream


logger = logging.getLogger(__name__)

# Some image hosts refuse requests without a browser agent
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class PhotoCache:
    """Fetch-on-miss cache of speaker photos."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None
    ):
        self._cache_dir = Path(cache_dir).expanduser()
        self._timeout = timeout
        self._client = client

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def path_for(self, speaker_id: str) -> Path:
        """Cache file for a speaker. Ids that would leave cache_dir raise ValueError."""
        if not is_safe_id(speaker_id):
            raise ValueError(f"Speaker id not usable as a file name: {speaker_id!r}")
        return self._cache_dir / f"{speaker_id}{PHOTO_SUFFIX}"

    def is_cached(self, speaker_id: str) -> bool:
        return is_safe_id(speaker_id) and self.path_for(speaker_id).exists()

    def ensure_cached(self, speaker_id: str, source_url: Optional[str]) -> Optional[Path]:
        """
        Make sure the photo for `speaker_id` is on disk.

        Returns the cache path, or None when there is no photo to show.
        """
        if not is_safe_id(speaker_id):
            logger.warning("Not caching photo for unusable speaker id %r", speaker_id)
            return None

        path = self.path_for(speaker_id)
        if path.exists():
            return path

        if not source_url or not source_url.strip():
            return None

        url = source_url.strip()
        if "\\" in url:
            logger.warning("Image URL badly formed, fixing separators: %s", url)
            url = url.replace("\\", "/")

        logger.debug("Caching photo for %s from %s", speaker_id, url)
        temp = path.with_name(path.name + TEMP_SUFFIX)
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            if self._client is not None:
                self._download(self._client, url, temp)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    self._download(client, url, temp)
            os.replace(temp, path)
            return path
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            logger.warning("Unable to cache photo for %s from %s: %s", speaker_id, url, e)
            return None
        finally:
            discard(temp)

    def purge(self) -> int:
        """Delete every cached photo. Returns how many were removed."""
        if not self._cache_dir.is_dir():
            logger.debug("Photo cache %s does not exist", self._cache_dir)
            return 0

        removed = 0
        for entry in self._cache_dir.iterdir():
            if entry.is_file():
                entry.unlink()
                removed += 1
        logger.info("Deleted %d cached speaker photos from %s", removed, self._cache_dir)
        return removed

    def _download(self, client: httpx.Client, url: str, temp: Path):
        with client.stream(
            "GET",
            url,
            headers={"User-Agent": BROWSER_USER_AGENT},
            timeout=self._timeout,
            follow_redirects=True
        ) as response:
            response.raise_for_status()
            write_stream(temp, response.iter_bytes())
