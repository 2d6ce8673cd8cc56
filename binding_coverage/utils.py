"""
Filesystem helpers for the binding_coverage package.

Covers the two corpus shapes a run reads: a recursive header tree and a
flat binding-source directory.
"""

import os
import logging
from typing import Callable, Iterable, Iterator, Optional, Sequence

from binding_coverage.exceptions import UnreadableHeaderError, UnreadableSourceTreeError

logger = logging.getLogger(__name__)


def walk_headers(header_root: str, suffix: str = ".h",
                 skip_dir_names: Iterable[str] = ("internal",),
                 on_error: Optional[Callable[[UnreadableHeaderError], None]] = None) -> Iterator[str]:
    """
    Yield header paths under ``header_root`` in a stable, sorted order.

    Directories whose name is in ``skip_dir_names`` are not descended into.
    Files not ending in ``suffix`` are skipped.

    A directory that cannot be listed becomes an UnreadableHeaderError. It
    is passed to ``on_error`` and the walk goes on with the rest of the
    tree; without ``on_error`` it is raised.

    Raises:
        UnreadableHeaderError: If ``header_root`` is not a directory.

    Examples:
        >>> list(walk_headers("/usr/include/allegro5"))[:2]
        ['/usr/include/allegro5/allegro.h', '/usr/include/allegro5/allegro5.h']
    """
    if not os.path.isdir(header_root):
        reason = "not a directory" if os.path.exists(header_root) else "no such directory"
        raise UnreadableHeaderError(header_root, reason)

    def walk_error(err: OSError) -> None:
        error = UnreadableHeaderError(err.filename or header_root, err.strerror or str(err))
        if on_error is None:
            raise error
        on_error(error)

    skip = set(skip_dir_names)
    for root, dirs, files in os.walk(header_root, onerror=walk_error):
        dirs[:] = sorted(d for d in dirs if d not in skip)
        for name in sorted(files):
            if name.endswith(suffix):
                yield os.path.join(root, name)


def read_header(path: str, encoding: str = "utf-8", module: str = "") -> str:
    """
    Read a header file as text.

    Raises:
        UnreadableHeaderError: the file could not be opened or read.
    """
    try:
        with open(path, "r", encoding=encoding, errors="replace") as f:
            return f.read()
    except (IOError, OSError) as e:
        raise UnreadableHeaderError(path, e.strerror or str(e), module=module) from e


def read_binding_source(package_root: str, suffixes: Sequence[str] = (".go",),
                        encoding: str = "utf-8", module: str = "") -> str:
    """
    Concatenate every source file directly inside ``package_root``.

    Subdirectories are not descended into. Files are read in sorted name
    order so the result is stable across runs.

    Raises:
        UnreadableSourceTreeError: the directory or any selected file could
            not be read.
    """
    try:
        entries = sorted(os.scandir(package_root), key=lambda e: e.name)
    except (IOError, OSError) as e:
        raise UnreadableSourceTreeError(package_root, e.strerror or str(e), module=module) from e

    parts = []
    for entry in entries:
        if not entry.name.endswith(tuple(suffixes)):
            continue
        try:
            if entry.is_dir():
                continue
            with open(entry.path, "r", encoding=encoding, errors="replace") as f:
                parts.append(f.read())
        except (IOError, OSError) as e:
            raise UnreadableSourceTreeError(entry.path, e.strerror or str(e), module=module) from e
    logger.debug(f"Read {len(parts)} binding source file(s) from {package_root}")
    return "".join(parts)


def contains_reference(source: str, marker: str, name: str) -> bool:
    """True when ``marker + name`` occurs anywhere in ``source``."""
    return (marker + name) in source
