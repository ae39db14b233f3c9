import pytest

from torrentinfo.bencode import BencodeDict, decode, encode
from torrentinfo.errors import (
    BencodeDecodeError,
    InvalidIntegerFormat,
    InvalidLengthPrefix,
    InvalidToken,
    NestingTooDeep,
    NonAscendingOrDuplicateKey,
    TrailingData,
    UnexpectedEof,
    UnterminatedContainer,
)


@pytest.mark.parametrize('data, expected', [
    (b'i0e', 0),
    (b'i42e', 42),
    (b'i-7e', -7),
    (b'i9223372036854775807e', 2 ** 63 - 1),
    (b'i-9223372036854775808e', -(2 ** 63)),
])
def test_decode_integer(data, expected):
    assert decode(data) == expected


@pytest.mark.parametrize('data', [
    b'ie', b'i-0e', b'i03e', b'i-03e', b'i-e', b'i1.5e', b'i--1e', b'i+1e', b'i 1e',
    b'i9223372036854775808e',
])
def test_decode_integer_rejects_malformed(data):
    with pytest.raises(InvalidIntegerFormat) as exc:
        decode(data)
    assert exc.value.offset == 0


def test_decode_integer_without_terminator():
    with pytest.raises(UnexpectedEof):
        decode(b'i42')


def test_decode_string():
    assert decode(b'4:spam') == b'spam'
    assert decode(b'0:') == b''
    assert decode(b'3:\x00\xff\x10') == b'\x00\xff\x10'


def test_decode_accepts_text_input():
    assert decode('4:spam') == b'spam'


def test_decode_rejects_other_types():
    with pytest.raises(TypeError):
        decode(42)


@pytest.mark.parametrize('data', [b'04:spam', b'4spam', b'4-:spam'])
def test_decode_string_rejects_bad_length(data):
    with pytest.raises(InvalidLengthPrefix):
        decode(data)


@pytest.mark.parametrize('data', [b'5:spam', b'4', b'12'])
def test_decode_string_truncated(data):
    with pytest.raises(UnexpectedEof) as exc:
        decode(data)
    assert exc.value.offset == len(data)


def test_decode_list():
    assert decode(b'le') == []
    assert decode(b'l4:spam4:eggse') == [b'spam', b'eggs']
    assert decode(b'li1eli2ei3eee') == [1, [2, 3]]


def test_decode_dict():
    assert decode(b'de') == {}
    assert decode(b'd3:cow3:moo4:spam4:eggse') == {b'cow': b'moo', b'spam': b'eggs'}
    assert decode(b'd4:spaml1:a1:bee') == {b'spam': [b'a', b'b']}


def test_decoded_dict_records_its_span():
    data = b'd4:infod1:ai1eee'
    value = decode(data)
    assert isinstance(value, BencodeDict)
    assert value.span == (0, len(data))
    assert value[b'info'].span == (7, 15)
    assert data[7:15] == b'd1:ai1ee'


def test_truncated_dict_is_unterminated():
    with pytest.raises(UnterminatedContainer) as exc:
        decode(b'd3:foo')
    assert exc.value.offset == 6


@pytest.mark.parametrize('data', [b'l', b'l4:spam', b'li1e', b'd', b'li42', b'l5:ab', b'd3:fooi1e'])
def test_truncated_containers(data):
    with pytest.raises(UnterminatedContainer):
        decode(data)


def test_dict_keys_out_of_order():
    with pytest.raises(NonAscendingOrDuplicateKey) as exc:
        decode(b'd1:bi1e1:ai2ee')
    assert exc.value.offset == 7


def test_dict_duplicate_keys():
    with pytest.raises(NonAscendingOrDuplicateKey) as exc:
        decode(b'd1:ai1e1:ai2ee')
    assert exc.value.offset == 7


def test_dict_keys_compare_as_bytes():
    # 'B' (0x42) sorts before 'a' (0x61)
    assert decode(b'd1:Bi1e1:ai2ee') == {b'B': 1, b'a': 2}
    with pytest.raises(NonAscendingOrDuplicateKey):
        decode(b'd1:ai2e1:Bi1ee')


def test_dict_keys_must_be_strings():
    with pytest.raises(InvalidToken) as exc:
        decode(b'di1ei2ee')
    assert exc.value.offset == 1


def test_unknown_prefix():
    with pytest.raises(InvalidToken):
        decode(b'x')


def test_empty_input():
    with pytest.raises(UnexpectedEof) as exc:
        decode(b'')
    assert exc.value.offset == 0


def test_trailing_data():
    with pytest.raises(TrailingData) as exc:
        decode(b'i1ei2e')
    assert exc.value.offset == 3


def test_nesting_too_deep():
    data = b'l' * 600 + b'e' * 600
    with pytest.raises(NestingTooDeep) as exc:
        decode(data)
    assert exc.value.offset == 512


def test_nesting_at_limit_is_accepted():
    value = decode(b'l' * 512 + b'e' * 512)
    depth = 0
    while value:
        value = value[0]
        depth += 1
    assert depth == 511


def test_nesting_limit_is_configurable():
    assert decode(b'llee', max_depth=2) == [[]]
    with pytest.raises(NestingTooDeep):
        decode(b'llleee', max_depth=2)


def test_nested_dicts_count_towards_depth():
    data = b'd1:a' * 3 + b'i1e' + b'e' * 3
    assert decode(data, max_depth=3) == {b'a': {b'a': {b'a': 1}}}
    with pytest.raises(NestingTooDeep):
        decode(data, max_depth=2)


def test_nesting_beyond_recursion_limit():
    data = b'l' * 5000 + b'e' * 5000
    with pytest.raises(NestingTooDeep) as exc:
        decode(data, max_depth=10000)
    assert 0 < exc.value.offset <= 5000


def test_decode_errors_are_value_errors():
    with pytest.raises(ValueError):
        decode(b'i01e')
    with pytest.raises(BencodeDecodeError) as exc:
        decode(b'l')
    assert exc.value.to_dict() == {
        'kind': 'UnterminatedContainer',
        'message': str(exc.value),
        'offset': 1,
    }


def test_encode():
    assert encode(3) == b'i3e'
    assert encode(-3) == b'i-3e'
    assert encode('spam') == b'4:spam'
    assert encode(b'') == b'0:'
    assert encode(['spam', 1]) == b'l4:spami1ee'
    assert encode(('a',)) == b'l1:ae'
    assert encode({'spam': 'eggs', 'cow': 'moo'}) == b'd3:cow3:moo4:spam4:eggse'


def test_encode_rejects_unsupported_types():
    with pytest.raises(ValueError):
        encode(1.5)
    with pytest.raises(ValueError):
        encode({1: 'a'})


def test_encode_decode():
    original = {
        b'announce': b'http://tracker.example.com:6969/announce',
        b'info': {
            b'files': [{b'length': 10, b'path': [b'a', b'b.txt']}],
            b'name': b'example',
            b'piece length': 262144,
            b'pieces': bytes(range(40)),
        },
        b'nodes': [[b'router.example.com', 6881]],
    }
    assert decode(encode(original)) == original
