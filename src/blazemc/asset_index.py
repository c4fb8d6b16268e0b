import hashlib
import logging
from pathlib import Path
from typing import Union

import requests

from .config import REQUEST_TIMEOUT, MAX_RETRIES, BASE_WAIT_TIME
from .content_store import write_atomic
from .errors import IntegrityError
from .manifest import fetch_document
from .models import AssetIndex, AssetIndexRef
from .parse_manifest import parse_asset_index

logger = logging.getLogger(__name__)

__all__ = ['fetch_asset_index', 'index_path']


def index_path(assets_dir: Union[str, Path], index_id: str) -> Path:
    return Path(assets_dir) / "indexes" / f"{index_id}.json"


def fetch_asset_index(
    session: requests.Session,
    ref: AssetIndexRef,
    assets_dir: Union[str, Path],
    *,
    timeout: float = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    base_wait_time: float = BASE_WAIT_TIME,
) -> AssetIndex:
    """
    Fetch the asset index named by the manifest and keep the raw document.

    Unlike the version manifest this is always fetched fresh; the stored copy
    at ``assets/indexes/<id>.json`` is for the game runtime, not a cache.

    Raises:
        NetworkError: If the request failed
        IntegrityError: If the body does not match the SHA-1 given by the manifest
        ParseError: If the document is not a valid asset index
    """
    logger.info(f"Fetching asset index {ref.id} from {ref.url}")
    body, doc = fetch_document(
        session, ref.url,
        timeout=timeout,
        max_retries=max_retries,
        base_wait_time=base_wait_time,
    )
    if ref.sha1:
        actual = hashlib.sha1(body).hexdigest()
        if actual != ref.sha1:
            logger.error(f"Asset index {ref.id} hash mismatch: expected {ref.sha1}, got {actual}")
            raise IntegrityError(
                f"Hash mismatch for asset index {ref.id}. Expected {ref.sha1}, got {actual}",
                url=ref.url, expected=ref.sha1, actual=actual,
            )
    index = parse_asset_index(ref.id, doc)

    write_atomic(index_path(assets_dir, ref.id), body)
    logger.info(f"Asset index {ref.id} lists {len(index.objects)} assets ({len(index.hashes())} distinct objects)")
    return index
