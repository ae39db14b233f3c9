"""
Module for handling .torrent files and their metadata.

``project`` turns a decoded bencode tree into an immutable ``Torrent``;
``parse`` does the decoding as well. Neither touches the filesystem.
"""
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from .bencode import DEFAULT_MAX_DEPTH, BencodeDict, BencodeValue, decode
from .errors import (
    ConflictingFields,
    InvalidEncoding,
    InvalidPiecesLength,
    InvalidValue,
    MissingField,
    NotADictionary,
    TypeMismatch,
)

logger = logging.getLogger(__name__)

PIECE_HASH_LENGTH = 20

T = TypeVar('T')


@dataclass(frozen=True)
class File:
    """Represents a file within a torrent."""
    path: Tuple[str, ...]
    length: int
    md5sum: Optional[str] = None


@dataclass(frozen=True)
class SingleFile:
    """Layout of a single-file torrent; the file is named after the torrent."""
    length: int
    md5sum: Optional[str] = None


@dataclass(frozen=True)
class MultiFile:
    """Layout of a multi-file torrent."""
    files: Tuple[File, ...]


FileLayout = Union[SingleFile, MultiFile]


@dataclass(frozen=True)
class Info:
    """Represents the 'info' dictionary in a .torrent file."""
    name: str
    piece_length: int
    pieces: bytes = field(repr=False)  # Concatenated 20-byte SHA-1 hashes
    layout: FileLayout
    private: Optional[bool] = None
    source: Optional[str] = None
    path: Optional[Tuple[str, ...]] = None
    root_hash: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True)
class Torrent:
    """Represents a .torrent file and its metadata."""
    info: Info
    info_hash: bytes
    announce: Optional[str] = None
    announce_list: Optional[Tuple[Tuple[str, ...], ...]] = None
    comment: Optional[str] = None
    created_by: Optional[str] = None
    creation_date: Optional[int] = None
    encoding: Optional[str] = None
    url_list: Optional[Tuple[str, ...]] = None
    httpseeds: Optional[Tuple[str, ...]] = None
    nodes: Optional[Tuple[Tuple[str, int], ...]] = None

    @classmethod
    def from_bytes(cls, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> 'Torrent':
        return parse(data, max_depth)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def info_hash_hex(self) -> str:
        return self.info_hash.hex()

    @property
    def files(self) -> List[File]:
        """Files of the torrent; a single-file torrent yields one entry."""
        layout = self.info.layout
        if isinstance(layout, MultiFile):
            return list(layout.files)
        return [File((self.info.name,), layout.length, layout.md5sum)]

    @property
    def num_files(self) -> int:
        layout = self.info.layout
        if isinstance(layout, MultiFile):
            return len(layout.files)
        return 1

    @property
    def total_size(self) -> int:
        """Get the total size of all files in the torrent in bytes."""
        layout = self.info.layout
        if isinstance(layout, MultiFile):
            return sum(f.length for f in layout.files)
        return layout.length

    @property
    def num_pieces(self) -> int:
        return len(self.info.pieces) // PIECE_HASH_LENGTH

    def piece_hashes(self) -> List[bytes]:
        pieces = self.info.pieces
        return [pieces[i:i + PIECE_HASH_LENGTH]
                for i in range(0, len(pieces), PIECE_HASH_LENGTH)]

    def trackers(self) -> List[str]:
        """All tracker URLs, announce first, without duplicates."""
        urls = []
        if self.announce:
            urls.append(self.announce)
        for tier in self.announce_list or ():
            for url in tier:
                if url not in urls:
                    urls.append(url)
        return urls


# ---------- field readers ----------

def _require(d: Dict[bytes, Any], key: bytes, name: str) -> Any:
    try:
        return d[key]
    except KeyError:
        raise MissingField(name) from None


def _optional(d: Dict[bytes, Any], key: bytes, name: str,
              convert: Callable[[Any, str], T]) -> Optional[T]:
    value = d.get(key)
    if value is None:
        return None
    return convert(value, name)


def _integer(value: Any, name: str) -> int:
    if not isinstance(value, int):
        raise TypeMismatch(name, 'an integer', value)
    return value


def _bytes(value: Any, name: str) -> bytes:
    if not isinstance(value, bytes):
        raise TypeMismatch(name, 'a byte string', value)
    return value


def _list(value: Any, name: str) -> list:
    if not isinstance(value, list):
        raise TypeMismatch(name, 'a list', value)
    return value


def _dict(value: Any, name: str) -> Dict[bytes, Any]:
    if not isinstance(value, dict):
        raise TypeMismatch(name, 'a dictionary', value)
    return value


def _text(value: Any, name: str) -> str:
    try:
        return _bytes(value, name).decode('utf-8')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(name, e) from e


def _length(value: Any, name: str) -> int:
    length = _integer(value, name)
    if length < 0:
        raise InvalidValue(name, "must not be negative")
    return length


def _text_list(value: Any, name: str) -> Tuple[str, ...]:
    return tuple(_text(item, f"{name}[{i}]")
                 for i, item in enumerate(_list(value, name)))


def _announce_list(value: Any, name: str) -> Tuple[Tuple[str, ...], ...]:
    return tuple(_text_list(tier, f"{name}[{i}]")
                 for i, tier in enumerate(_list(value, name)))


def _url_list(value: Any, name: str) -> Tuple[str, ...]:
    # BEP 19 allows a bare string when there is a single web seed
    if isinstance(value, bytes):
        return (_text(value, name),) if value else ()
    return _text_list(value, name)


def _nodes(value: Any, name: str) -> Tuple[Tuple[str, int], ...]:
    nodes = []
    for i, node in enumerate(_list(value, name)):
        node_name = f"{name}[{i}]"
        pair = _list(node, node_name)
        if len(pair) != 2:
            raise InvalidValue(node_name, "must be a [host, port] pair")
        nodes.append((_text(pair[0], f"{node_name}[0]"),
                      _integer(pair[1], f"{node_name}[1]")))
    return tuple(nodes)


def _private(value: Any, name: str) -> bool:
    return _integer(value, name) != 0


def _parse_file(value: Any, name: str) -> File:
    entry = _dict(value, name)
    length = _length(_require(entry, b'length', f"{name}.length"), f"{name}.length")
    path_name = f"{name}.path"
    path = _text_list(_require(entry, b'path', path_name), path_name)
    if not path:
        raise InvalidValue(path_name, "must not be empty")
    md5sum = _optional(entry, b'md5sum', f"{name}.md5sum", _text)
    return File(path=path, length=length, md5sum=md5sum)


def _parse_layout(info: Dict[bytes, Any]) -> FileLayout:
    has_length = b'length' in info
    has_files = b'files' in info
    if has_length and has_files:
        raise ConflictingFields('length', 'files')

    if has_length:
        return SingleFile(
            length=_length(info[b'length'], 'length'),
            md5sum=_optional(info, b'md5sum', 'md5sum', _text),
        )
    if has_files:
        files = _list(info[b'files'], 'files')
        return MultiFile(files=tuple(
            _parse_file(entry, f"files[{i}]") for i, entry in enumerate(files)
        ))
    raise MissingField('length or files')


def _parse_info(info: Dict[bytes, Any]) -> Info:
    """Parse the 'info' dictionary from the .torrent file."""
    name = _text(_require(info, b'name', 'name'), 'name')

    piece_length = _integer(_require(info, b'piece length', 'piece length'), 'piece length')
    if piece_length <= 0:
        raise InvalidValue('piece length', "must be positive")

    pieces = _bytes(_require(info, b'pieces', 'pieces'), 'pieces')
    if len(pieces) % PIECE_HASH_LENGTH:
        raise InvalidPiecesLength(len(pieces))

    return Info(
        name=name,
        piece_length=piece_length,
        pieces=pieces,
        layout=_parse_layout(info),
        private=_optional(info, b'private', 'private', _private),
        source=_optional(info, b'source', 'source', _text),
        path=_optional(info, b'path', 'path', _text_list),
        root_hash=_optional(info, b'root hash', 'root hash', _bytes),
    )


def compute_info_hash(info: BencodeDict, source: bytes) -> bytes:
    """SHA-1 of the exact bytes that encoded ``info`` in ``source``."""
    start, end = info.span
    if not (0 <= start < end <= len(source)) or source[start:start + 1] != b'd':
        raise ValueError("source bytes do not contain the decoded 'info' dictionary")
    return hashlib.sha1(source[start:end]).digest()


def project(value: BencodeValue, source: bytes) -> Torrent:
    """
    Build a Torrent from a decoded metainfo tree.

    Args:
        value: The tree returned by ``bencode.decode(source)``
        source: The bytes that were decoded, used to hash the 'info' dictionary

    Returns:
        Torrent: The validated, immutable torrent model

    Raises:
        ProjectionError: if a field is missing, mistyped or inconsistent
    """
    if not isinstance(value, dict):
        raise NotADictionary()

    info = _dict(_require(value, b'info', 'info'), 'info')
    if not isinstance(info, BencodeDict):
        raise TypeError("project() needs the tree returned by bencode.decode()")

    info_hash = compute_info_hash(info, bytes(source))

    torrent = Torrent(
        info=_parse_info(info),
        info_hash=info_hash,
        announce=_optional(value, b'announce', 'announce', _text),
        announce_list=_optional(value, b'announce-list', 'announce-list', _announce_list),
        comment=_optional(value, b'comment', 'comment', _text),
        created_by=_optional(value, b'created by', 'created by', _text),
        creation_date=_optional(value, b'creation date', 'creation date', _integer),
        encoding=_optional(value, b'encoding', 'encoding', _text),
        url_list=_optional(value, b'url-list', 'url-list', _url_list),
        httpseeds=_optional(value, b'httpseeds', 'httpseeds', _text_list),
        nodes=_optional(value, b'nodes', 'nodes', _nodes),
    )
    logger.debug(f"Parsed torrent {torrent.name!r} ({torrent.info_hash_hex})")
    return torrent


def parse(data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> Torrent:
    """Decode and project a complete .torrent buffer."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return project(decode(data, max_depth), data)
