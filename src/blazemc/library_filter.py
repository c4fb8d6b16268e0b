import logging
from typing import Iterable, Iterator

from .models import LibraryEntry

logger = logging.getLogger(__name__)

__all__ = ['applicable_libraries', 'is_applicable']


def is_applicable(entry: LibraryEntry, target_platform: str) -> bool:
    """
    Decide whether a library is needed on `target_platform`.

    Only the OS name of the first rule is looked at; its action and any
    later rules are ignored.
    """
    if not entry.rules:
        return True
    return entry.rules[0].os_name == target_platform


def applicable_libraries(entries: Iterable[LibraryEntry], target_platform: str) -> Iterator[LibraryEntry]:
    """Yield the library entries that apply to `target_platform`, in manifest order."""
    for entry in entries:
        if is_applicable(entry, target_platform):
            yield entry
        else:
            logger.debug(f"Skipping {entry.name}: not for {target_platform}")
