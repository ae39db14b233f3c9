"""
Bencode encoding and decoding for .torrent metainfo files.

Decoded values map onto plain Python types:

    integer      -> int
    byte string  -> bytes
    list         -> list
    dictionary   -> BencodeDict (a dict keyed by bytes)

Every decoded dictionary remembers the byte span of its own encoding, so a
caller can hash the exact source bytes of a sub-dictionary (the torrent's
``info`` dictionary) without re-encoding it.
"""
import logging
import re
from typing import Any, List, Tuple, Union

from .errors import (
    InvalidIntegerFormat,
    InvalidLengthPrefix,
    InvalidToken,
    NestingTooDeep,
    NonAscendingOrDuplicateKey,
    TrailingData,
    UnexpectedEof,
    UnterminatedContainer,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 512

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_INTEGER_RE = re.compile(rb'-?(?:0|[1-9][0-9]*)')
_DIGITS_RE = re.compile(rb'[0-9]+')

_INT = ord('i')
_LIST = ord('l')
_DICT = ord('d')
_END = ord('e')
_COLON = ord(':')
_ZERO = ord('0')
_NINE = ord('9')


class BencodeDict(dict):
    """A decoded dictionary together with the (start, end) span of its encoding."""

    span: Tuple[int, int] = (0, 0)


BencodeValue = Union[int, bytes, List[Any], BencodeDict]


class BencodeDecoder:
    """Single pass recursive descent decoder over a byte buffer."""

    def __init__(self, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH):
        if isinstance(data, str):
            data = data.encode('utf-8')
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("BencodeDecoder expects bytes, bytearray or memoryview")
        self.data = bytes(data)
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth

    def decode(self) -> BencodeValue:
        """Decode the whole buffer; anything after the first value is an error."""
        try:
            value = self._parse_value()
        except RecursionError:
            # max_depth was set above what the interpreter's stack allows
            raise NestingTooDeep(
                self.pos, f"nesting depth {self.depth} exceeds the interpreter's recursion limit"
            ) from None
        if self.pos != len(self.data):
            raise TrailingData(
                self.pos, f"{len(self.data) - self.pos} bytes left over"
            )
        return value

    def _truncated(self, detail: str):
        if self.depth:
            return UnterminatedContainer(len(self.data), detail)
        return UnexpectedEof(len(self.data), detail)

    def _at_end_marker(self) -> bool:
        """Consume a container's closing 'e' if it is next."""
        if self.pos >= len(self.data):
            raise self._truncated("missing 'e'")
        if self.data[self.pos] == _END:
            self.pos += 1
            return True
        return False

    def _parse_value(self) -> BencodeValue:
        # Lists and dictionaries are parsed inline so that each nesting level
        # costs exactly one Python stack frame.
        if self.pos >= len(self.data):
            raise self._truncated("expected a value")

        start = self.pos
        c = self.data[start]
        if c == _INT:
            return self._parse_int()
        if _ZERO <= c <= _NINE:
            return self._parse_bytestring()
        if c != _LIST and c != _DICT:
            raise InvalidToken(start, f"{bytes([c])!r} does not start a value")

        if self.depth >= self.max_depth:
            raise NestingTooDeep(
                start, f"more than {self.max_depth} nested lists or dictionaries"
            )
        self.depth += 1
        self.pos += 1

        if c == _LIST:
            items = []
            while not self._at_end_marker():
                items.append(self._parse_value())
            self.depth -= 1
            return items

        result = BencodeDict()
        previous = None
        while not self._at_end_marker():
            key_offset = self.pos
            if not _ZERO <= self.data[key_offset] <= _NINE:
                raise InvalidToken(key_offset, "dictionary keys must be byte strings")
            key = self._parse_bytestring()
            if previous is not None and key <= previous:
                raise NonAscendingOrDuplicateKey(
                    key_offset, f"{key!r} follows {previous!r}"
                )
            result[key] = self._parse_value()
            previous = key
        result.span = (start, self.pos)
        self.depth -= 1
        return result

    def _parse_int(self) -> int:
        """
        Decode a bencoded integer.

        Format: i<number>e
        Example: i42e -> 42
        """
        start = self.pos
        end = self.data.find(b'e', start + 1)
        if end == -1:
            raise self._truncated("integer is missing its 'e' terminator")

        digits = self.data[start + 1:end]
        if not _INTEGER_RE.fullmatch(digits) or digits == b'-0':
            raise InvalidIntegerFormat(start, repr(digits))

        value = int(digits)
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidIntegerFormat(start, "value does not fit in 64 bits")

        self.pos = end + 1
        return value

    def _parse_bytestring(self) -> bytes:
        """
        Decode a bencoded byte string.

        Format: <length>:<data>
        Example: 5:hello -> b'hello'
        """
        start = self.pos
        match = _DIGITS_RE.match(self.data, start)
        colon = match.end()
        if colon >= len(self.data):
            raise self._truncated("byte string length is missing its ':'")
        if self.data[colon] != _COLON:
            raise InvalidLengthPrefix(start, "length must be followed by ':'")

        length_bytes = match.group()
        if length_bytes[0] == _ZERO and len(length_bytes) > 1:
            raise InvalidLengthPrefix(start, "leading zeros are not allowed")
        try:
            length = int(length_bytes)
        except ValueError:
            raise InvalidLengthPrefix(start, "length is too large")

        end = colon + 1 + length
        if end > len(self.data):
            raise self._truncated(
                f"byte string of length {length} exceeds the available data"
            )

        self.pos = end
        return self.data[colon + 1:end]


def decode(data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> BencodeValue:
    """
    Decode a complete bencoded buffer.

    Args:
        data: The bencoded bytes
        max_depth: Maximum number of nested lists/dictionaries

    Returns:
        The decoded value (int, bytes, list or BencodeDict)

    Raises:
        BencodeDecodeError: if the buffer is not exactly one valid value
    """
    value = BencodeDecoder(data, max_depth).decode()
    logger.debug(f"Decoded {len(data)} bytes of bencode")
    return value


def encode(obj: Any) -> bytes:
    """
    Encode a Python object to bencode format.

    Args:
        obj: The object to encode (int, str, bytes, list, tuple or dict)

    Returns:
        The bencoded data as bytes
    """
    if isinstance(obj, int):
        return b"i%de" % obj
    elif isinstance(obj, (str, bytes)):
        if isinstance(obj, str):
            obj = obj.encode('utf-8')
        return b"%d:" % len(obj) + obj
    elif isinstance(obj, (list, tuple)):
        return b"l" + b"".join(encode(item) for item in obj) + b"e"
    elif isinstance(obj, dict):
        items = []
        for k, v in obj.items():
            if isinstance(k, str):
                k = k.encode('utf-8')
            elif not isinstance(k, bytes):
                raise ValueError("Dictionary keys must be strings")
            items.append((k, v))
        items.sort(key=lambda item: item[0])
        result = [b"d"]
        for k, v in items:
            result.append(encode(k))
            result.append(encode(v))
        result.append(b"e")
        return b"".join(result)
    else:
        raise ValueError(f"Unsupported type: {type(obj)}")
