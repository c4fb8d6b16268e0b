import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple

from .errors import ParseError
from .models import (
    AssetEntry,
    AssetIndex,
    AssetIndexRef,
    LibraryEntry,
    PlatformRule,
    VersionManifest,
)

logger = logging.getLogger(__name__)

__all__ = ['parse_version_manifest', 'parse_asset_index']

_SHA1_RE = re.compile(r"^[0-9a-fA-F]{40}$")


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ParseError(f"{where} must be a non-empty string")
    return value


def _optional_sha1(value: Any, where: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not _SHA1_RE.match(value):
        raise ParseError(f"{where} is not a SHA-1 hex digest: {value!r}")
    return value.lower()


def _safe_relative_path(raw: Any, where: str) -> str:
    """Normalize an artifact path, refusing anything that could leave the libraries directory."""
    path = PurePosixPath(_require_str(raw, where))
    if not path.parts or path.is_absolute() or ".." in path.parts or ":" in path.parts[0]:
        raise ParseError(f"{where} must be a relative path inside the libraries directory: {raw!r}")
    return str(path)


def _safe_file_name(raw: Any, where: str) -> str:
    """Accept only a bare file name, so the value can become part of a path."""
    name = _require_str(raw, where)
    if PurePosixPath(name).name != name or "\\" in name or ":" in name or name in (".", ".."):
        raise ParseError(f"{where} must be a plain file name: {raw!r}")
    return name


def _parse_rules(raw: Any, where: str) -> Optional[Tuple[PlatformRule, ...]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ParseError(f"{where} must be a list")
    rules = []
    for i, rule in enumerate(raw):
        if not isinstance(rule, dict):
            raise ParseError(f"{where}/{i} must be an object")
        rule_os = rule.get("os") or {}
        if not isinstance(rule_os, dict):
            raise ParseError(f"{where}/{i}/os must be an object")
        rules.append(PlatformRule(action=rule.get("action", "allow"), os_name=rule_os.get("name")))
    return tuple(rules)


def _parse_libraries(raw: Any) -> Tuple[LibraryEntry, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ParseError("libraries must be a list")

    libraries: List[LibraryEntry] = []
    for idx, entry in enumerate(raw):
        where = f"libraries/{idx}"
        if not isinstance(entry, dict):
            raise ParseError(f"{where} must be an object")
        artifact = (entry.get("downloads") or {}).get("artifact")
        if artifact is None:
            # natives-only entries of older manifests carry classifiers but no artifact
            logger.debug(f"Skipping {entry.get('name', where)}: no artifact download")
            continue
        libraries.append(LibraryEntry(
            name=entry.get("name", where),
            path=_safe_relative_path(artifact.get("path"), f"{where}/downloads/artifact/path"),
            url=_require_str(artifact.get("url"), f"{where}/downloads/artifact/url"),
            sha1=_optional_sha1(artifact.get("sha1"), f"{where}/downloads/artifact/sha1"),
            rules=_parse_rules(entry.get("rules"), f"{where}/rules"),
        ))
    return tuple(libraries)


def parse_version_manifest(doc: Dict[str, Any]) -> VersionManifest:
    """
    Validate a version manifest document and keep what the pipeline needs.

    Args:
        doc: Decoded JSON of the version manifest

    Returns:
        The parsed VersionManifest

    Raises:
        ParseError: If a required field is missing or has the wrong type
    """
    if not isinstance(doc, dict):
        raise ParseError("Version manifest must be a JSON object")

    try:
        client = doc["downloads"]["client"]
        asset_index = doc["assetIndex"]
        asset_index_ref = AssetIndexRef(
            id=_safe_file_name(asset_index["id"], "assetIndex/id"),
            url=_require_str(asset_index["url"], "assetIndex/url"),
            sha1=_optional_sha1(asset_index.get("sha1"), "assetIndex/sha1"),
        )
        return VersionManifest(
            id=_require_str(doc["id"], "id"),
            client_url=_require_str(client["url"], "downloads/client/url"),
            client_sha1=_optional_sha1(client.get("sha1"), "downloads/client/sha1"),
            asset_index=asset_index_ref,
            libraries=_parse_libraries(doc.get("libraries")),
            main_class=doc.get("mainClass", "net.minecraft.client.main.Main"),
            version_type=doc.get("type", "release"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        logger.error(f"Failed to parse version manifest: {e!r}")
        raise ParseError(f"Invalid version manifest structure: {e!r}") from e


def parse_asset_index(index_id: str, doc: Dict[str, Any]) -> AssetIndex:
    """Parse an asset index document into name -> AssetEntry."""
    objects = doc.get("objects") if isinstance(doc, dict) else None
    if not isinstance(objects, dict):
        raise ParseError(f"Asset index {index_id} has no 'objects' mapping")

    entries: Dict[str, AssetEntry] = {}
    for name, obj in objects.items():
        try:
            content_hash = obj["hash"]
            size = int(obj.get("size", 0))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ParseError(f"Invalid asset entry {name!r} in index {index_id}: {e!r}") from e
        if not isinstance(content_hash, str) or not _SHA1_RE.match(content_hash):
            raise ParseError(f"Asset {name!r} in index {index_id} has an invalid hash: {content_hash!r}")
        entries[name] = AssetEntry(hash=content_hash.lower(), size=size)
    return AssetIndex(id=index_id, objects=entries)
