import io
import hashlib
import logging
import time
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional

import requests

from .config import DEFAULT_CONCURRENCY, REQUEST_TIMEOUT, MAX_RETRIES, BASE_WAIT_TIME
from .content_store import ContentStore, write_atomic
from .errors import FetchError, NetworkError, IntegrityError
from .models import DownloadTask, DownloadResult

# Constants for download operations
CHUNK_SIZE = 1024 * 1024  # 1MB chunks for downloads

# a malformed URL fails the same way on every attempt
_NOT_RETRYABLE = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
)

logger = logging.getLogger(__name__)

__all__ = ['stream_download', 'BoundedDownloader']


def stream_download(session: requests.Session, url: str, *,
                    timeout: float = REQUEST_TIMEOUT,
                    max_retries: int = MAX_RETRIES,
                    base_wait_time: float = BASE_WAIT_TIME) -> bytes:
    """
    Stream a GET response body into memory.

    Transport errors and 5xx responses are retried with exponential backoff;
    any other HTTP error fails immediately.

    Args:
        session: HTTP session used for the request
        url: URL to download from
        timeout: Per-request connect/read timeout in seconds
        max_retries: Maximum number of attempts
        base_wait_time: Wait before the first retry, doubled on every retry

    Returns:
        The response body

    Raises:
        NetworkError: If every attempt failed or the server refused the request
    """
    if max_retries < 1:
        raise ValueError("max_retries must be a positive integer")

    for attempt in range(max_retries):
        try:
            with session.get(url, stream=True, timeout=timeout) as response:
                response.raise_for_status()
                data = io.BytesIO()
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        data.write(chunk)
                return data.getvalue()

        except requests.exceptions.RequestException as e:
            status_code = getattr(e.response, "status_code", None)
            if isinstance(e, _NOT_RETRYABLE):
                retryable = False
            else:
                retryable = status_code is None or status_code >= 500
            if retryable and attempt < max_retries - 1:
                wait_time = base_wait_time * (2 ** attempt)
                logger.warning(f"Download attempt {attempt+1} failed for {url}: {e}. Retrying in {wait_time}s...")
                time.sleep(wait_time)
                continue
            logger.error(f"GET {url} failed after {attempt+1} attempt(s): {e}")
            raise NetworkError(f"Failed to download {url}: {e}", url=url, status_code=status_code) from e


class BoundedDownloader:
    """
    Run download tasks with at most `concurrency` requests in flight.

    A failing task is reported in its DownloadResult and never stops its
    siblings. Tasks flagged `addressed` are published through the
    ContentStore; every other task is written straight to its destination.
    """

    def __init__(self, session: requests.Session, *,
                 concurrency: int = DEFAULT_CONCURRENCY,
                 store: Optional[ContentStore] = None,
                 timeout: float = REQUEST_TIMEOUT,
                 max_retries: int = MAX_RETRIES,
                 base_wait_time: float = BASE_WAIT_TIME,
                 verify: bool = True):
        if concurrency < 1:
            raise ValueError("concurrency must be a positive integer")
        if max_retries < 1:
            raise ValueError("max_retries must be a positive integer")
        self.session = session
        self.concurrency = concurrency
        self.store = store
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_wait_time = base_wait_time
        self.verify = verify

    def _write(self, task: DownloadTask, data: bytes) -> None:
        if task.addressed:
            if self.store is None:
                raise ValueError(f"Task for {task.sha1} is hash-addressed but no store was given")
            self.store.put(task.sha1, data)
        else:
            write_atomic(task.destination, data)

    def _run_task(self, task: DownloadTask) -> DownloadResult:
        try:
            data = stream_download(
                self.session, task.url,
                timeout=self.timeout,
                max_retries=self.max_retries,
                base_wait_time=self.base_wait_time,
            )
            if self.verify and task.sha1:
                actual = hashlib.sha1(data).hexdigest()
                if actual != task.sha1.lower():
                    raise IntegrityError(
                        f"Hash mismatch for {task.url}. Expected {task.sha1}, got {actual}",
                        url=task.url, expected=task.sha1, actual=actual,
                    )
            self._write(task, data)
        except FetchError as e:
            logger.error(f"Failed to download {task.label}: {e}")
            return DownloadResult(task, error=e)

        logger.debug(f"Downloaded {task.label} ({len(data)} bytes)")
        return DownloadResult(task, size=len(data))

    def run(self, tasks: Iterable[DownloadTask]) -> List[DownloadResult]:
        """
        Download every task and block until all of them have finished.

        Tasks sharing a destination are submitted once. The returned list holds
        exactly one result per submitted task, in completion order.
        """
        unique: Dict[Path, DownloadTask] = {}
        for task in tasks:
            unique.setdefault(task.destination, task)

        if not unique:
            return []

        logger.info(f"Downloading {len(unique)} files with {self.concurrency} workers")
        results = []
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="download") as executor:
            futures = {executor.submit(self._run_task, task): task for task in unique.values()}
            for future in as_completed(futures):
                results.append(future.result())

        failed = sum(1 for r in results if not r.ok)
        total_size = sum(r.size for r in results)
        logger.info(f"Downloaded {len(results) - failed}/{len(results)} files "
                    f"({total_size / (1024*1024):.2f} MB), {failed} failed")
        return results
