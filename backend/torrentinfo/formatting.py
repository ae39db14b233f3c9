"""
Human readable and JSON friendly renderings of parsed torrents.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict

from .torrent import Torrent

BYTE_THRESHOLD = 80
DECIMAL_PREFIXES = ['k', 'M', 'G', 'T', 'P', 'E', 'Z', 'Y']


def format_file_size(size: float) -> str:
    """Format a byte count with decimal prefixes, e.g. 1500 -> '1.50 kB'."""
    if abs(size) < 1000:
        return f"{int(size)} bytes"
    value = float(size)
    prefix = ''
    for prefix in DECIMAL_PREFIXES:
        value /= 1000
        if abs(value) < 1000:
            break
    return f"{value:.2f} {prefix}B"


def format_creation_date(timestamp: int) -> str:
    """Format a Unix timestamp as a UTC date, or '' if it is out of range."""
    try:
        date = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return ''
    return date.strftime('%Y-%m-%d %H:%M:%S UTC')


def digit_count(number: int) -> int:
    """Number of digits needed to print number."""
    return len(str(abs(number)))


def relative_path_or_filename(full_path: str, root: str) -> str:
    """Path relative to root when it lies below root, else the bare file name."""
    full_path = os.path.abspath(full_path)
    root = os.path.abspath(root)
    if full_path == root:
        return os.path.basename(full_path)
    if os.path.commonpath([full_path, root]) == root:
        return os.path.relpath(full_path, root)
    return os.path.basename(full_path) or full_path


def torrent_to_dict(torrent: Torrent) -> Dict[str, Any]:
    """JSON serialisable summary of a torrent."""
    info = torrent.info
    data = {
        'name': torrent.name,
        'info_hash': torrent.info_hash_hex,
        'announce': torrent.announce,
        'announce_list': [list(tier) for tier in torrent.announce_list]
        if torrent.announce_list is not None else None,
        'comment': torrent.comment,
        'created_by': torrent.created_by,
        'creation_date': torrent.creation_date,
        'encoding': torrent.encoding,
        'piece_length': info.piece_length,
        'num_pieces': torrent.num_pieces,
        'private': info.private,
        'source': info.source,
        'num_files': torrent.num_files,
        'total_size': torrent.total_size,
        'total_size_human': format_file_size(torrent.total_size),
        'files': [
            {'path': '/'.join(f.path), 'length': f.length}
            for f in torrent.files
        ],
    }
    if torrent.creation_date is not None:
        data['created_on'] = format_creation_date(torrent.creation_date)
    if info.path is not None:
        data['path'] = '/'.join(info.path)
    if info.root_hash is not None:
        data['root_hash'] = info.root_hash.hex()
    if torrent.url_list is not None:
        data['url_list'] = list(torrent.url_list)
    if torrent.httpseeds is not None:
        data['httpseeds'] = list(torrent.httpseeds)
    if torrent.nodes is not None:
        data['nodes'] = [[host, port] for host, port in torrent.nodes]
    return data


def bytes_to_text(value: bytes) -> str:
    """Printable form of a byte string: its text when short and printable UTF-8, else its size."""
    if len(value) > BYTE_THRESHOLD:
        return f"[{len(value)} Bytes]"
    try:
        text = value.decode('utf-8')
    except UnicodeDecodeError:
        return '[invalid utf-8]'
    if not text.isprintable():
        return f"[{len(value)} Bytes]"
    return text


def raw_to_jsonable(value: Any) -> Any:
    """Convert any decoded bencode value into JSON serialisable data."""
    if isinstance(value, bytes):
        return bytes_to_text(value)
    if isinstance(value, list):
        return [raw_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key.decode('utf-8', errors='replace'): raw_to_jsonable(item)
                for key, item in value.items()}
    return value
