import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterator, Union

from .errors import FilesystemError

logger = logging.getLogger(__name__)

__all__ = ['ContentStore', 'write_atomic']

_HEX_RE = re.compile(r"^[0-9a-f]{2,}$")


def write_atomic(path: Path, data: bytes) -> None:
    """
    Atomically publish `data` at `path`:
      1) write it into a temp file alongside `path`
      2) fsync and close it
      3) os.replace() it over the real file
    Nothing is visible at `path` unless every step succeeded.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".part", dir=str(path.parent))
    except OSError as e:
        raise FilesystemError(f"Failed to prepare {path}: {e}", path=path) from e

    tmp_path = Path(tmp)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        raise FilesystemError(f"Failed to write {path}: {e}", path=path) from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class ContentStore:
    """
    Hash-addressed object store laid out as ``<root>/<hash[0:2]>/<hash>``.

    An object that exists is trusted; reads never re-hash it.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, content_hash: str) -> Path:
        content_hash = content_hash.lower()
        if not _HEX_RE.match(content_hash):
            raise ValueError(f"Not a hex digest: {content_hash!r}")
        return self.root / content_hash[:2] / content_hash

    def has(self, content_hash: str) -> bool:
        return self.path_for(content_hash).is_file()

    def put(self, content_hash: str, data: bytes) -> Path:
        """Store `data` under `content_hash`, leaving an existing object untouched."""
        path = self.path_for(content_hash)
        if path.exists():
            logger.debug(f"Object {content_hash} already stored")
            return path
        write_atomic(path, data)
        return path

    def __contains__(self, content_hash: str) -> bool:
        return self.has(content_hash)

    def __iter__(self) -> Iterator[str]:
        if not self.root.is_dir():
            return
        for bucket in sorted(self.root.iterdir()):
            if not bucket.is_dir():
                continue
            for obj in sorted(bucket.iterdir()):
                if obj.is_file() and obj.name[:2] == bucket.name:
                    yield obj.name
