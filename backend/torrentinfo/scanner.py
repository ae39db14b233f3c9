"""
Locate, read and parse .torrent files on disk.

Parsing is independent per file, so a directory is parsed with one thread
pool task per file. A file that fails to read or parse is reported in its
``ScanResult`` and does not stop the others.
"""
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from . import config
from .errors import TorrentInfoError, TorrentTooLarge
from .torrent import Torrent, parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    """Outcome of parsing one .torrent file."""
    path: str
    torrent: Optional[Torrent] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_torrent_file(path: str) -> bool:
    return path.lower().endswith(config.TORRENT_EXTENSION)


def is_hidden(name: str) -> bool:
    return name.startswith('.')


def read_torrent_file(path: str, max_size: int = config.MAX_TORRENT_SIZE) -> bytes:
    """Read a whole .torrent file, refusing anything larger than max_size."""
    size = os.path.getsize(path)
    if size > max_size:
        raise TorrentTooLarge(size, max_size)
    with open(path, 'rb') as f:
        return f.read()


def find_torrent_files(root: str, recursive: bool = False,
                       max_walk_depth: int = config.MAX_WALK_DEPTH) -> List[str]:
    """
    Collect .torrent files below root, sorted by lower-cased path.

    A root that is itself a .torrent file is returned as the only entry.
    Hidden files and directories are skipped.
    """
    if os.path.isfile(root):
        if not is_torrent_file(root):
            raise ValueError(f"Input path is not a torrent file: {root}")
        return [root]
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Input path does not exist or is not accessible: '{root}'")

    max_depth = max_walk_depth if recursive else 1
    root_depth = root.rstrip(os.sep).count(os.sep)
    files = []
    for dirpath, dirnames, filenames in os.walk(root):
        depth = dirpath.rstrip(os.sep).count(os.sep) - root_depth + 1
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = [d for d in dirnames if not is_hidden(d)]
        for filename in filenames:
            if is_hidden(filename) or not is_torrent_file(filename):
                continue
            path = os.path.join(dirpath, filename)
            if os.path.isfile(path):
                files.append(path)

    files.sort(key=lambda p: p.lower())
    return files


def load_torrent(path: str, max_size: int = config.MAX_TORRENT_SIZE,
                 max_depth: int = config.MAX_NESTING_DEPTH) -> Torrent:
    """Read and parse a single .torrent file."""
    return parse(read_torrent_file(path, max_size), max_depth)


def _scan_one(path: str, max_size: int, max_depth: int) -> ScanResult:
    try:
        torrent = load_torrent(path, max_size, max_depth)
    except (OSError, TorrentInfoError) as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return ScanResult(path=path, error=e)
    logger.debug(f"Parsed {path}: {torrent.info_hash_hex}")
    return ScanResult(path=path, torrent=torrent)


def scan(paths: List[str], workers: int = config.SCAN_WORKERS,
         max_size: int = config.MAX_TORRENT_SIZE,
         max_depth: int = config.MAX_NESTING_DEPTH) -> List[ScanResult]:
    """Parse every path in a thread pool; results keep the input order."""
    if not paths:
        return []
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        results = list(executor.map(lambda p: _scan_one(p, max_size, max_depth), paths))
    failed = sum(1 for r in results if not r.ok)
    logger.info(f"Scanned {len(results)} torrent files, {failed} failed")
    return results


def scan_directory(root: str, recursive: bool = False,
                   workers: int = config.SCAN_WORKERS) -> List[ScanResult]:
    return scan(find_torrent_files(root, recursive), workers)
