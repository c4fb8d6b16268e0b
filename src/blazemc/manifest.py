#manifest.py setup
import json
import logging
from pathlib import Path
from typing import Any, Tuple, Union

import requests

from .config import (
    DEFAULT_MANIFEST_URL,
    REQUEST_TIMEOUT,
    MAX_RETRIES,
    BASE_WAIT_TIME,
)
from .content_store import write_atomic
from .download import stream_download
from .errors import FilesystemError, ParseError
from .models import VersionManifest
from .parse_manifest import parse_version_manifest

logger = logging.getLogger(__name__)

#Make the public interface exportable
__all__ = ['ManifestResolver', 'fetch_document']


def fetch_document(
    session: requests.Session,
    url: str,
    *,
    timeout: float = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    base_wait_time: float = BASE_WAIT_TIME,
) -> Tuple[bytes, Any]:
    """
    GET a JSON document.

    Returns:
        Tuple of (raw_body, decoded_json). The raw body is what gets cached.

    Raises:
        NetworkError: On transport failure or a non-2xx status
        ParseError: If the body is not valid JSON
    """
    body = stream_download(session, url, timeout=timeout, max_retries=max_retries, base_wait_time=base_wait_time)
    try:
        return body, json.loads(body)
    except ValueError as e:
        logger.error(f"Response from {url} is not valid JSON: {e}")
        raise ParseError(f"Invalid JSON from {url}: {e}", url=url) from e


class ManifestResolver:
    """
    Resolve a version manifest, preferring the local copy.

    A cached manifest is trusted forever: once ``<cache_dir>/<version_id>.json``
    exists no request is made for that version again.
    """

    def __init__(
        self,
        session: requests.Session,
        manifest_url: str = DEFAULT_MANIFEST_URL,
        *,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        base_wait_time: float = BASE_WAIT_TIME,
    ):
        self.session = session
        self.manifest_url = manifest_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_wait_time = base_wait_time

    @staticmethod
    def cache_path(version_id: str, cache_dir: Union[str, Path]) -> Path:
        if not version_id or Path(version_id).name != version_id or version_id in (".", ".."):
            raise ValueError(f"Invalid version id: {version_id!r}")
        return Path(cache_dir) / f"{version_id}.json"

    def _load_cached(self, version_id: str, cache_path: Path) -> VersionManifest:
        logger.debug(f"Using cached version manifest from {cache_path}")
        try:
            raw = cache_path.read_bytes()
        except OSError as e:
            raise FilesystemError(f"Failed to read cached manifest {cache_path}: {e}", path=cache_path) from e
        try:
            doc = json.loads(raw)
        except ValueError as e:
            raise ParseError(f"Cached manifest {cache_path} is not valid JSON: {e}", path=cache_path) from e
        manifest = parse_version_manifest(doc)
        if manifest.id != version_id:
            raise ParseError(
                f"Cached manifest {cache_path} describes version {manifest.id}, expected {version_id}",
                path=cache_path,
            )
        return manifest

    def resolve(self, version_id: str, cache_dir: Union[str, Path]) -> VersionManifest:
        """
        Get the manifest for `version_id`.

        Args:
            version_id: Version identifier, e.g. "1.20.4"
            cache_dir: Directory holding ``<version_id>.json``

        Returns:
            VersionManifest: The parsed manifest.

        Raises:
            NetworkError: If the manifest had to be fetched and the request failed.
            ParseError: If the document is malformed or describes another version.
            FilesystemError: If the cache could not be read or written.
        """
        cache_path = self.cache_path(version_id, cache_dir)
        if cache_path.exists():
            return self._load_cached(version_id, cache_path)

        logger.info(f"Fetching version manifest {version_id} from {self.manifest_url}")
        body, doc = fetch_document(
            self.session,
            self.manifest_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            base_wait_time=self.base_wait_time,
        )
        manifest = parse_version_manifest(doc)
        if manifest.id != version_id:
            raise ParseError(
                f"Manifest at {self.manifest_url} describes version {manifest.id}, expected {version_id}",
                url=self.manifest_url,
            )

        write_atomic(cache_path, body)
        logger.debug(f"Version manifest cached at {cache_path}")
        return manifest
