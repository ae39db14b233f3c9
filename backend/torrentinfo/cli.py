"""
Command line interface: print information about .torrent files.

    torrentinfo [path] [-d] [-e | -f] [-r] [-s] [-v]
"""
import argparse
import logging
import os
import sys
from typing import Any, List, Optional

from . import config
from .bencode import decode
from .errors import TorrentInfoError
from .formatting import (
    bytes_to_text,
    digit_count,
    format_creation_date,
    format_file_size,
    relative_path_or_filename,
)
from .scanner import ScanResult, find_torrent_files, read_torrent_file, scan
from .torrent import Torrent

logger = logging.getLogger(__name__)

COLUMN_WIDTH = 19
INDENT = '    '


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='torrentinfo',
        description='Print information about .torrent files',
    )
    parser.add_argument('path', nargs='?', help='Optional input directory or file')
    parser.add_argument('-d', '--details', action='store_true',
                        help='Show detailed information about the torrent')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-e', '--everything', action='store_true',
                       help='Print everything about the torrent')
    group.add_argument('-f', '--files', action='store_true',
                       help='Show files within the torrent')
    parser.add_argument('-r', '--recursive', action='store_true',
                        help='Recursive directory iteration')
    parser.add_argument('-s', '--sort', action='store_true',
                        help='Sort torrents by total size')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    return parser


def print_line(name: str, value: Any) -> None:
    padding = ' ' * max(COLUMN_WIDTH - len(name), 0)
    print(f"{INDENT}{name} {padding}{value}")


def print_info(torrent: Torrent) -> None:
    """Print basic torrent information."""
    print_line('name', torrent.name)
    if torrent.comment is not None:
        print_line('comment', torrent.comment)
    if torrent.announce is not None:
        print_line('announce url', torrent.announce)
    if torrent.created_by is not None:
        print_line('created by', torrent.created_by)
    if torrent.creation_date is not None:
        print_line('created on', format_creation_date(torrent.creation_date))
    if torrent.encoding is not None:
        print_line('encoding', torrent.encoding)
    print_line('num files', torrent.num_files)
    print_line('total size', format_file_size(torrent.total_size))
    print_line('info hash', torrent.info_hash_hex)


def print_extra_info(torrent: Torrent) -> None:
    """Print detailed torrent information."""
    print_line('piece length', format_file_size(torrent.info.piece_length))
    print_line('num pieces', torrent.num_pieces)
    if torrent.info.private is not None:
        print_line('private', 'true' if torrent.info.private else 'false')
    if torrent.info.source is not None:
        print_line('source', torrent.info.source)
    if torrent.info.path is not None:
        print_line('path', '/'.join(torrent.info.path))
    if torrent.info.root_hash is not None:
        print_line('root hash', torrent.info.root_hash.hex())
    trackers = torrent.trackers()
    if len(trackers) > 1:
        print_line('trackers', len(trackers))


def print_files(torrent: Torrent) -> None:
    """Print a list of all the files in the torrent."""
    files = torrent.files
    if len(files) == 1:
        print_line('files', '/'.join(files[0].path))
        return

    print(f"{INDENT}files")
    width = digit_count(len(files))
    for index, file in enumerate(files, 1):
        size = format_file_size(file.length)
        print(f"{INDENT * 2}{index:>{width}}{INDENT}{size:>9}{INDENT}{'/'.join(file.path)}")


def print_value(value: Any, depth: int) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            print(f"{INDENT * depth}{key.decode('utf-8', errors='replace')}")
            print_value(item, depth + 1)
    elif isinstance(value, list):
        for index, item in enumerate(value):
            print(f"{INDENT * depth}{index}")
            print_value(item, depth + 1)
    elif isinstance(value, bytes):
        print(f"{INDENT * depth}{bytes_to_text(value)}")
    else:
        print(f"{INDENT * depth}{value}")


def print_raw_data(path: str) -> None:
    """Print the whole decoded tree without interpreting it as a torrent."""
    value = decode(read_torrent_file(path), config.MAX_NESTING_DEPTH)
    if isinstance(value, dict):
        print_value(value, 1)
    else:
        print(f"{INDENT}torrent file is not a dictionary")


def print_error(error: Any) -> None:
    print(f"Error: {error}", file=sys.stderr)


def print_torrents(results: List[ScanResult], root: str, args: argparse.Namespace) -> int:
    failures = 0
    width = digit_count(len(results))
    for number, result in enumerate(results, 1):
        print(f"{number:>{width}}/{len(results)}: {relative_path_or_filename(result.path, root)}")
        if not result.ok:
            print_error(result.error)
            failures += 1
            continue
        print_info(result.torrent)
        if args.details:
            print_extra_info(result.torrent)
        if args.files:
            print_files(result.torrent)
    return failures


def print_torrents_raw(paths: List[str], root: str) -> int:
    failures = 0
    width = digit_count(len(paths))
    for number, path in enumerate(paths, 1):
        print(f"{number:>{width}}/{len(paths)}: {relative_path_or_filename(path, root)}")
        try:
            print_raw_data(path)
        except (OSError, TorrentInfoError) as e:
            print_error(e)
            failures += 1
    return failures


def print_torrents_sorted(results: List[ScanResult]) -> int:
    failures = [r for r in results if not r.ok]
    for result in failures:
        print_error(f"{result.path}: {result.error}")

    parsed = sorted((r for r in results if r.ok), key=lambda r: r.torrent.total_size)
    total_size = 0
    for result in parsed:
        total_size += result.torrent.total_size
        print(f"{format_file_size(result.torrent.total_size):>10}   {result.torrent.name}")
    print(f"\nTotal size: {format_file_size(total_size)}")
    return len(failures)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format=config.LOG_FORMAT,
    )

    path = os.path.abspath((args.path or '').strip() or os.getcwd())
    try:
        files = find_torrent_files(path, args.recursive)
    except (OSError, ValueError) as e:
        print_error(e)
        return 1

    root = os.path.dirname(path) if os.path.isfile(path) else path
    if args.verbose:
        if os.path.isfile(path):
            print(f"Reading file: {path}")
        else:
            print(f"Reading files from: {path}")

    if not files:
        print_error("No torrent files found")
        return 1
    logger.debug(f"Found {len(files)} torrent files under {root}")

    if args.everything:
        failures = print_torrents_raw(files, root)
    elif args.sort:
        failures = print_torrents_sorted(scan(files))
    else:
        failures = print_torrents(scan(files), root, args)

    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
