#CONFIG.py setup.
import sys

from platformdirs import user_data_dir

DATA_DIR = user_data_dir('blazemc', 'blazemc', ensure_exists=True) #instances and cached version manifests live here

DEFAULT_VERSION = "1.20.4"
DEFAULT_MANIFEST_URL = "https://piston-meta.mojang.com/v1/packages/efcc510e525cef0e859b5435f82b6e3193214efc/1.20.4.json"
RESOURCES_URL = "https://resources.download.minecraft.net"

ALL_PLATFORMS = "windows linux osx".split()

# Download settings
DEFAULT_CONCURRENCY = 5
REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BASE_WAIT_TIME = 1.0  # seconds, doubled on every retry

# Instance layout
INSTANCE_DIR_NAME = "instance"
ASSETS_DIR_NAME = "assets"
LIBRARIES_DIR_NAME = "libraries"
CLIENT_JAR_NAME = "client.jar"
LAUNCHER_CONFIG_NAME = "launcher_config.json"

DEFAULT_USERNAME = "Username"
LOCK_TIMEOUT = 60  # seconds

# Launch settings
LAUNCHER_BRAND = "minecraft-launcher"
ACCESS_TOKEN_PLACEHOLDER = "0"
HEAP_DUMP_ARG = "-XX:HeapDumpPath=MojangTricksIntelDriversForPerformance_javaw.exe_minecraft.exe.heapdump"
JVM_MEMORY_ARGS = (
    "-Xmx2G -XX:+UnlockExperimentalVMOptions -XX:+UseG1GC -XX:G1NewSizePercent=20 "
    "-XX:G1ReservePercent=20 -XX:MaxGCPauseMillis=50 -XX:G1HeapRegionSize=32M"
).split()


def current_platform() -> str:
    """Map sys.platform onto the OS names used by library rules."""
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "osx"
    return "linux"
