import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

__all__ = ['list_files', 'normalize_path', 'build_classpath']


def list_files(root: Union[str, Path]) -> List[Path]:
    """
    Every regular file below `root`.

    Directories are walked with an explicit stack, so depth is not bounded by
    the call stack. Entries are sorted within each directory.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    files: List[Path] = []
    pending = [root]
    while pending:
        directory = pending.pop()
        subdirs = []
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                subdirs.append(entry)
            else:
                files.append(entry)
        # reversed so the stack pops subdirectories in sorted order
        pending.extend(reversed(subdirs))
    return files


def normalize_path(path: Union[str, Path], relative_to: Optional[Union[str, Path]] = None) -> str:
    """Resolve `path`; make it relative to `relative_to` when it lies beneath it."""
    resolved = Path(path).resolve()
    if relative_to is not None:
        try:
            return str(resolved.relative_to(Path(relative_to).resolve()))
        except ValueError:
            pass
    return str(resolved)


def build_classpath(paths: Iterable[Union[str, Path]], relative_to: Optional[Union[str, Path]] = None) -> str:
    return os.pathsep.join(normalize_path(p, relative_to) for p in paths)
