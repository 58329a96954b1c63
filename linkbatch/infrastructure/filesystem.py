import bz2
import gzip
import os
import zlib
from pathlib import Path
from typing import Callable, Iterator, TextIO

from linkbatch.domain.exceptions import ScanError


def iter_files(root: Path, predicate: Callable[[Path], bool]) -> Iterator[Path]:
    """
    Lazily walks `root` and yields regular files accepted by `predicate`.
    Directories and files are visited in sorted order so every walk over an
    unchanged tree yields the same sequence. A missing root yields nothing.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file() and predicate(path):
                yield path


def iter_files_named(root: Path, name: str) -> Iterator[Path]:
    return iter_files(root, lambda p: p.name == name)


def iter_files_with_suffix(root: Path, suffix: str) -> Iterator[Path]:
    return iter_files(root, lambda p: p.name.endswith(suffix))


def open_text(path: Path) -> TextIO:
    """Opens a plain, bz2 or gzip compressed text file for streaming reads."""
    if path.suffix == ".bz2":
        return bz2.open(path, "rt", encoding="utf-8", errors="replace")
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8", errors="replace")
    return open(path, "rt", encoding="utf-8", errors="replace")


def count_triples(path: Path) -> int:
    """
    Counts the lines of a (possibly compressed) N-Triples file that do not
    start with '#'. The file is streamed, never loaded whole.
    """
    try:
        with open_text(path) as stream:
            return sum(1 for line in stream if not line.startswith("#"))
    except (OSError, EOFError, zlib.error) as e:
        raise ScanError(path, str(e)) from e
