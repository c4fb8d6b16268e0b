import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import requests

from .config import (
    DATA_DIR,
    DEFAULT_VERSION,
    DEFAULT_MANIFEST_URL,
    DEFAULT_CONCURRENCY,
    RESOURCES_URL,
    REQUEST_TIMEOUT,
    MAX_RETRIES,
    BASE_WAIT_TIME,
    INSTANCE_DIR_NAME,
    ASSETS_DIR_NAME,
    LIBRARIES_DIR_NAME,
    CLIENT_JAR_NAME,
    current_platform,
)
from .asset_index import fetch_asset_index
from .content_store import ContentStore
from .download import BoundedDownloader
from .errors import FetchError
from .launcher_config import ensure_config
from .library_filter import applicable_libraries
from .manifest import ManifestResolver
from .models import AssetIndex, DownloadTask, InstallReport, LibraryEntry, VersionManifest

logger = logging.getLogger(__name__)

__all__ = ["default_instance_dir", "asset_url", "plan_downloads", "install_or_update"]


def default_instance_dir() -> Path:
    return Path(DATA_DIR) / INSTANCE_DIR_NAME


def asset_url(content_hash: str, resources_url: str = RESOURCES_URL) -> str:
    return f"{resources_url.rstrip('/')}/{content_hash[:2]}/{content_hash}"


def plan_downloads(
    manifest: VersionManifest,
    asset_index: AssetIndex,
    libraries: Iterable[LibraryEntry],
    instance_dir: Path,
    store: ContentStore,
    *,
    resources_url: str = RESOURCES_URL,
) -> Tuple[List[DownloadTask], int]:
    """
    Work out what is missing from the instance.

    Returns:
        Tuple of (tasks, already_present). Tasks are keyed by destination, so
        one hash never yields more than one task.
    """
    tasks: Dict[Path, DownloadTask] = {}
    present = 0

    for content_hash in sorted(asset_index.hashes()):
        if store.has(content_hash):
            present += 1
            continue
        destination = store.path_for(content_hash)
        tasks.setdefault(destination, DownloadTask(
            url=asset_url(content_hash, resources_url),
            destination=destination,
            sha1=content_hash,
            addressed=True,
        ))

    libraries_dir = instance_dir / LIBRARIES_DIR_NAME
    for library in libraries:
        destination = libraries_dir / library.path
        if destination.exists():
            present += 1
            continue
        tasks.setdefault(destination, DownloadTask(url=library.url, destination=destination, sha1=library.sha1))

    client_jar = instance_dir / CLIENT_JAR_NAME
    if client_jar.exists():
        present += 1
    else:
        tasks.setdefault(client_jar, DownloadTask(url=manifest.client_url, destination=client_jar, sha1=manifest.client_sha1))

    return list(tasks.values()), present


def install_or_update(
    version_id: str = DEFAULT_VERSION,
    instance_dir: Optional[Union[str, Path]] = None,
    target_platform: Optional[str] = None,
    *,
    session: Optional[requests.Session] = None,
    manifest_url: str = DEFAULT_MANIFEST_URL,
    manifest_cache_dir: Optional[Union[str, Path]] = None,
    resources_url: str = RESOURCES_URL,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = REQUEST_TIMEOUT,
    max_retries: int = MAX_RETRIES,
    base_wait_time: float = BASE_WAIT_TIME,
) -> InstallReport:
    """
    Bring an instance up to date with a version manifest:
      1) resolve the version manifest (cached next to the instance)
      2) fetch the asset index
      3) filter libraries for the target platform
      4) plan every missing asset object, library and the client jar
      5) download them with bounded concurrency
      6) make sure the launcher config exists and report

    Failures in 1) and 2) raise; a failed download only shows up in the report.
    """
    instance_dir = Path(instance_dir) if instance_dir is not None else default_instance_dir()
    if manifest_cache_dir is None:
        manifest_cache_dir = instance_dir.parent
    if target_platform is None:
        target_platform = current_platform()

    own_session = session is None
    if own_session:
        session = requests.Session()

    try:
        # 1) manifest
        resolver = ManifestResolver(
            session, manifest_url,
            timeout=timeout, max_retries=max_retries, base_wait_time=base_wait_time,
        )
        manifest = resolver.resolve(version_id, manifest_cache_dir)

        # 2) asset index
        assets_dir = instance_dir / ASSETS_DIR_NAME
        asset_index = fetch_asset_index(
            session, manifest.asset_index, assets_dir,
            timeout=timeout, max_retries=max_retries, base_wait_time=base_wait_time,
        )

        # 3) + 4) libraries and the missing set
        store = ContentStore(assets_dir / "objects")
        libraries = applicable_libraries(manifest.libraries, target_platform)
        tasks, present = plan_downloads(
            manifest, asset_index, libraries, instance_dir, store,
            resources_url=resources_url,
        )
        logger.info(f"{len(tasks)} files to download, {present} already present")

        # 5) download
        downloader = BoundedDownloader(
            session,
            concurrency=concurrency,
            store=store,
            timeout=timeout,
            max_retries=max_retries,
            base_wait_time=base_wait_time,
        )
        results = downloader.run(tasks)
    finally:
        if own_session:
            session.close()

    # 6) config + report
    try:
        ensure_config(instance_dir)
    except FetchError as e:
        logger.warning(f"Launcher config is unusable, leaving it as is: {e}")
    report = InstallReport(version_id=manifest.id, instance_dir=instance_dir, results=results, already_present=present)
    if report.ok:
        logger.info(f"Instance {instance_dir} is up to date with {manifest.id}")
    else:
        logger.error(f"{len(report.failed)} of {len(results)} downloads failed for {manifest.id}")
    return report
