"""
Resource Fetcher

Downloads remote JSON documents into local snapshot files.

GUARANTEES:
===========
1. A destination file is only ever replaced by a COMPLETE download
2. Bytes go to a temporary sibling first, then os.replace() over the target
3. Failed fetches leave the previous file untouched (stale-but-valid)
4. Failed fetches are returned as FetchResult, never raised
5. No retries - retry policy belongs to the caller
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import logging
import os

import httpx

from .contracts import FetchResult, FetchStatus


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Signage/1.0"
TEMP_SUFFIX = ".tmp"


class ResourceFetcher:
    """
    Fetches URLs into files below a working directory.

    An httpx.Client may be injected (shared connection pool, or a
    MockTransport in tests). Without one, each fetch opens its own client.
    """

    def __init__(
        self,
        work_dir: Union[str, Path] = ".",
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.Client] = None
    ):
        self._work_dir = Path(work_dir)
        self._timeout = timeout
        self._user_agent = user_agent
        self._client = client

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    def resolve(self, destination: Union[str, Path]) -> Path:
        """Map a destination name onto the working directory."""
        path = Path(destination)
        if path.is_absolute():
            return path
        return self._work_dir / path

    def fetch(self, url: str, destination: Union[str, Path]) -> FetchResult:
        """
        Download `url` and atomically replace `destination` with it.

        Returns a FetchResult (always).
        """
        target = self.resolve(destination)
        temp = target.with_name(target.name + TEMP_SUFFIX)
        attempted_at = datetime.now()
        logger.debug("Fetching %s -> %s", url, target)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self.session() as client:
                with client.stream(
                    "GET",
                    url,
                    headers={"User-Agent": self._user_agent},
                    timeout=self._timeout,
                    follow_redirects=True
                ) as response:
                    if not response.is_success:
                        return self._failure(
                            url, target, attempted_at, FetchStatus.HTTP_ERROR,
                            f"HTTP {response.status_code}",
                            http_status=response.status_code
                        )
                    written = write_stream(temp, response.iter_bytes())

            os.replace(temp, target)
            return FetchResult(
                url=url,
                destination=target,
                status=FetchStatus.SUCCESS,
                attempted_at=attempted_at,
                completed_at=datetime.now(),
                bytes_written=written,
                http_status=response.status_code
            )

        except httpx.TimeoutException:
            return self._failure(url, target, attempted_at, FetchStatus.TIMEOUT, "Request timed out")

        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(url, target, attempted_at, FetchStatus.NETWORK_ERROR, str(e))

        except OSError as e:
            return self._failure(url, target, attempted_at, FetchStatus.IO_ERROR, str(e))

        finally:
            discard(temp)

    @contextmanager
    def session(self) -> Iterator[httpx.Client]:
        """Yield the injected client, or a short-lived one."""
        if self._client is not None:
            yield self._client
        else:
            with httpx.Client(timeout=self._timeout) as client:
                yield client

    def _failure(
        self,
        url: str,
        target: Path,
        attempted_at: datetime,
        status: FetchStatus,
        message: str,
        http_status: Optional[int] = None
    ) -> FetchResult:
        logger.warning("Fetch of %s failed (%s): %s", url, status.value, message)
        return FetchResult(
            url=url,
            destination=target,
            status=status,
            attempted_at=attempted_at,
            completed_at=datetime.now(),
            http_status=http_status,
            error_message=message
        )


def write_stream(path: Path, chunks: Iterable[bytes]) -> int:
    """Write chunks to `path`, fsync, close. Returns bytes written."""
    written = 0
    with open(path, "wb") as f:
        for chunk in chunks:
            f.write(chunk)
            written += len(chunk)
        f.flush()
        os.fsync(f.fileno())
    return written


def discard(path: Path):
    """Remove a leftover temp file, if any."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
