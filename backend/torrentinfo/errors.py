"""
Exceptions raised while decoding and projecting .torrent files.

Decode errors describe malformed bencode and carry the byte offset where the
problem was detected. Projection errors describe well-formed bencode that is
not a valid torrent and carry the name of the offending field.
"""
from typing import Any, Dict, Optional


class TorrentInfoError(Exception):
    """Base class for every error raised by torrentinfo."""

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'message': str(self)}


class TorrentTooLarge(TorrentInfoError):
    """Input exceeds the configured size bound."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Torrent file is {size} bytes, limit is {limit} bytes")


# ---------- bencode syntax ----------

class BencodeDecodeError(TorrentInfoError, ValueError):
    """Malformed bencode."""
    reason = "Invalid bencode"

    def __init__(self, offset: int, detail: str = ''):
        self.offset = offset
        self.detail = detail
        message = f"{self.reason} at offset {offset}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['offset'] = self.offset
        return data


class UnexpectedEof(BencodeDecodeError):
    reason = "Unexpected end of data"


class InvalidIntegerFormat(BencodeDecodeError):
    reason = "Invalid integer"


class InvalidLengthPrefix(BencodeDecodeError):
    reason = "Invalid byte string length"


class UnterminatedContainer(BencodeDecodeError):
    reason = "Data ended inside an unterminated list or dictionary"


class NonAscendingOrDuplicateKey(BencodeDecodeError):
    reason = "Dictionary key out of order or duplicated"


class NestingTooDeep(BencodeDecodeError):
    reason = "Nesting too deep"


class TrailingData(BencodeDecodeError):
    reason = "Extra data after top-level value"


class InvalidToken(BencodeDecodeError):
    reason = "Unexpected byte"


# ---------- metainfo structure ----------

class ProjectionError(TorrentInfoError, ValueError):
    """Well-formed bencode that does not describe a valid torrent."""

    def __init__(self, field: Optional[str], message: str):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['field'] = self.field
        return data


class NotADictionary(ProjectionError):
    def __init__(self):
        super().__init__(None, "Torrent file is not a dictionary")


class MissingField(ProjectionError):
    def __init__(self, field: str):
        super().__init__(field, f"Missing required field '{field}'")


class TypeMismatch(ProjectionError):
    def __init__(self, field: str, expected: str, actual: Any):
        self.expected = expected
        super().__init__(
            field,
            f"Field '{field}' must be {expected}, got {describe_type(actual)}"
        )


class InvalidPiecesLength(ProjectionError):
    def __init__(self, length: int):
        self.length = length
        super().__init__(
            'pieces',
            f"Field 'pieces' is {length} bytes, not a multiple of 20"
        )


class ConflictingFields(ProjectionError):
    def __init__(self, first: str, second: str):
        super().__init__(
            f"{first}/{second}",
            f"Fields '{first}' and '{second}' are mutually exclusive"
        )


class InvalidEncoding(ProjectionError):
    def __init__(self, field: str, error: UnicodeDecodeError):
        super().__init__(field, f"Field '{field}' is not valid UTF-8: {error.reason}")


class InvalidValue(ProjectionError):
    def __init__(self, field: str, message: str):
        super().__init__(field, f"Field '{field}' {message}")


def describe_type(value: Any) -> str:
    """Bencode name of a decoded value's type."""
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, int):
        return 'integer'
    if isinstance(value, bytes):
        return 'byte string'
    if isinstance(value, list):
        return 'list'
    if isinstance(value, dict):
        return 'dictionary'
    return type(value).__name__
