import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from plumbum import local

from .config import (
    ACCESS_TOKEN_PLACEHOLDER,
    ASSETS_DIR_NAME,
    CLIENT_JAR_NAME,
    HEAP_DUMP_ARG,
    JVM_MEMORY_ARGS,
    LAUNCHER_BRAND,
    LIBRARIES_DIR_NAME,
    current_platform,
)
from .classpath import build_classpath, list_files
from .errors import FilesystemError
from .launcher_config import LauncherConfig
from .models import VersionManifest

logger = logging.getLogger(__name__)

__all__ = ['default_java', 'build_launch_args', 'launch']


def default_java() -> str:
    return "javaw" if current_platform() == "windows" else "java"


def build_launch_args(
    instance_dir: Union[str, Path],
    manifest: VersionManifest,
    config: LauncherConfig,
    *,
    memory_args: Sequence[str] = JVM_MEMORY_ARGS,
) -> List[str]:
    """Command-line arguments for the Java runtime, not including the executable."""
    instance_dir = Path(instance_dir).resolve()
    libraries_dir = instance_dir / LIBRARIES_DIR_NAME
    assets_dir = instance_dir / ASSETS_DIR_NAME

    classpath = build_classpath(list_files(libraries_dir) + [instance_dir / CLIENT_JAR_NAME])

    return [
        HEAP_DUMP_ARG,
        f"-Djava.library.path={libraries_dir}",
        f"-Djna.tmpdir={libraries_dir}",
        f"-Dio.netty.native.workdir={libraries_dir}",
        f"-Dminecraft.launcher.brand={LAUNCHER_BRAND}",
        f"-Dminecraft.launcher.version={manifest.id}",
        "-cp", classpath,
        *memory_args,
        manifest.main_class,
        "--username", config.username,
        "--version", manifest.id,
        "--gameDir", str(instance_dir),
        "--assetsDir", str(assets_dir),
        "--assetIndex", manifest.asset_index.id,
        "--accessToken", ACCESS_TOKEN_PLACEHOLDER,
        "--versionType", manifest.version_type,
    ]


def launch(
    instance_dir: Union[str, Path],
    manifest: VersionManifest,
    config: LauncherConfig,
    *,
    java: Optional[str] = None,
) -> subprocess.Popen:
    """
    Spawn the game and hand back the process without waiting on it.

    Raises:
        FilesystemError: If the instance has no client jar yet.
        plumbum.CommandNotFound: If the Java executable is not on PATH.
    """
    instance_dir = Path(instance_dir)
    client_jar = instance_dir / CLIENT_JAR_NAME
    if not client_jar.is_file():
        raise FilesystemError(f"No client jar at {client_jar}; run install first", path=client_jar)

    java_cmd = local[java or default_java()]
    args = build_launch_args(instance_dir, manifest, config)
    logger.info(f"Launching {manifest.id} as {config.username}")
    logger.debug(f"Command: {java_cmd} {' '.join(args)}")
    # plumbum pipes all streams by default; the game inherits ours
    return java_cmd[tuple(args)].popen(cwd=str(instance_dir), stdin=None, stdout=None, stderr=None)
