from plumbum.cli import Application, SwitchAttr, Flag, Set
import logging, sys
from typing import Optional
from pathlib import Path

import requests

from .config      import DEFAULT_VERSION, DEFAULT_MANIFEST_URL, DEFAULT_CONCURRENCY, ALL_PLATFORMS, current_platform
from .controller  import install_or_update, default_instance_dir
from .errors      import FetchError
from .launch      import launch
from .launcher_config import LauncherConfig, load_config, save_config
from .manifest    import ManifestResolver

# setup a sane default logger
logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)
logger = logging.getLogger(__name__)


def _fail(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


class BlazeApp(Application):
    """blazemc: install and launch a game instance from a version manifest."""
    PROG_NAME = "blazemc"
    VERSION   = "0.1.0"

    # global flags
    verbose = Flag("-v", "--verbose", help="Enable debug logging")

    def main(self, *args):
        if args:
            print(f"Unknown command: {args[0]}")
            return 1
        if self.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
        if not self.nested_command:
            self.help()
            return 1


class _InstanceCommand(Application):
    game_version = SwitchAttr("--game-version", str, default=DEFAULT_VERSION,
                              help="Version id to install or launch")
    instance     = SwitchAttr("--instance", str,
                              help="Instance directory (default: user data dir)")

    @property
    def instance_dir(self) -> Path:
        return Path(self.instance) if self.instance else default_instance_dir()


@BlazeApp.subcommand("install")
class Install(_InstanceCommand):
    """Download everything the version needs that the instance does not have yet."""
    PROG_NAME = "install"

    manifest_url = SwitchAttr("--manifest-url", str, default=DEFAULT_MANIFEST_URL,
                              help="URL of the version manifest")
    platform     = SwitchAttr("--platform", Set(*ALL_PLATFORMS), default=current_platform(),
                              help=f"Target OS for library rules ({','.join(ALL_PLATFORMS)})")
    concurrency  = SwitchAttr("--concurrency", int, default=DEFAULT_CONCURRENCY,
                              help="Maximum simultaneous downloads")

    def main(self):
        if self.concurrency < 1:
            return _fail("--concurrency must be at least 1")
        try:
            report = install_or_update(
                self.game_version,
                self.instance_dir,
                self.platform,
                manifest_url=self.manifest_url,
                concurrency=self.concurrency,
            )
        except FetchError as e:
            return _fail(f"Install aborted: {e}")

        print(f"Version:     {report.version_id}")
        print(f"Instance:    {report.instance_dir}")
        print(f"Present:     {report.already_present}")
        print(f"Downloaded:  {len(report.succeeded)} ({report.downloaded_bytes / (1024*1024):.2f} MB)")
        print(f"Failed:      {len(report.failed)}")
        for result in report.failed:
            print(f"  {result.task.label}: {result.error}")
        return 0 if report.ok else 1


@BlazeApp.subcommand("launch")
class Launch(_InstanceCommand):
    """Start the game from an installed instance."""
    PROG_NAME = "launch"

    manifest_url = SwitchAttr("--manifest-url", str, default=DEFAULT_MANIFEST_URL,
                              help="URL of the version manifest, used only if it is not cached")
    java         = SwitchAttr("--java", str, help="Java executable (default: javaw on Windows, java elsewhere)")

    def main(self):
        instance_dir = self.instance_dir
        try:
            with requests.Session() as session:
                manifest = ManifestResolver(session, self.manifest_url).resolve(self.game_version, instance_dir.parent)
            config = load_config(instance_dir)
            proc = launch(instance_dir, manifest, config, java=self.java)
        except FetchError as e:
            return _fail(f"Launch failed: {e}")
        print(f"Started {manifest.id} (pid {proc.pid})")


@BlazeApp.subcommand("username")
class Username(Application):
    """Show or set the username passed to the game."""
    PROG_NAME = "username"

    instance     = SwitchAttr("--instance", str,
                              help="Instance directory (default: user data dir)")

    def main(self, name: Optional[str] = None):
        instance_dir = Path(self.instance) if self.instance else default_instance_dir()
        try:
            if name is None:
                print(load_config(instance_dir).username)
                return
            save_config(instance_dir, LauncherConfig(username=name))
        except FetchError as e:
            return _fail(str(e))
        print(f"Username set to {name}")


if __name__ == "__main__":
    BlazeApp.run()
