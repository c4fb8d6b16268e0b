from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .errors import FetchError

__all__ = [
    'PlatformRule', 'LibraryEntry', 'AssetIndexRef', 'VersionManifest',
    'AssetEntry', 'AssetIndex', 'DownloadTask', 'DownloadResult', 'InstallReport',
]


@dataclass(frozen=True)
class PlatformRule:
    action: str = "allow"
    os_name: Optional[str] = None


@dataclass(frozen=True)
class LibraryEntry:
    name: str
    path: str  # relative to the libraries directory, taken from the manifest
    url: str
    sha1: Optional[str] = None
    rules: Optional[Tuple[PlatformRule, ...]] = None


@dataclass(frozen=True)
class AssetIndexRef:
    id: str
    url: str
    sha1: Optional[str] = None


@dataclass(frozen=True)
class VersionManifest:
    id: str
    client_url: str
    asset_index: AssetIndexRef
    libraries: Tuple[LibraryEntry, ...] = ()
    client_sha1: Optional[str] = None
    main_class: str = "net.minecraft.client.main.Main"
    version_type: str = "release"


@dataclass(frozen=True)
class AssetEntry:
    hash: str
    size: int


@dataclass(frozen=True)
class AssetIndex:
    id: str
    objects: Dict[str, AssetEntry] = field(default_factory=dict)

    def hashes(self) -> Set[str]:
        """Distinct content hashes; several names may share one object."""
        return {entry.hash for entry in self.objects.values()}


@dataclass(frozen=True)
class DownloadTask:
    url: str
    destination: Path
    sha1: Optional[str] = None
    addressed: bool = False  # destination is a ContentStore path keyed by sha1

    @property
    def label(self) -> str:
        return self.sha1 if self.addressed else self.destination.name


@dataclass(frozen=True)
class DownloadResult:
    task: DownloadTask
    error: Optional[FetchError] = None
    size: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class InstallReport:
    version_id: str
    instance_dir: Path
    results: List[DownloadResult] = field(default_factory=list)
    already_present: int = 0

    @property
    def succeeded(self) -> List[DownloadResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[DownloadResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def downloaded_bytes(self) -> int:
        return sum(r.size for r in self.succeeded)
