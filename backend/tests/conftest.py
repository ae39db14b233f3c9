import pytest

from torrentinfo.bencode import encode

SINGLE_FILE_HASH = 'b1f6ca11aea51cabd86dba8b1fb4a9b8774ab49c'
MULTI_FILE_HASH = '45b0ffc5f4e2bddd554294d72e30d72f98933ca1'


def single_file_info(**extra):
    info = {
        'length': 4,
        'name': 'a.txt',
        'piece length': 4,
        'pieces': bytes(20),
    }
    info.update(extra)
    return info


def multi_file_info(**extra):
    info = {
        'files': [
            {'length': 10, 'path': ['a.txt']},
            {'length': 20, 'path': ['sub', 'b.txt']},
            {'length': 30, 'path': ['c.bin']},
        ],
        'name': 'dir',
        'piece length': 16,
        'pieces': bytes(80),
    }
    info.update(extra)
    return info


def make_torrent(info=None, **fields):
    """Bencode a metainfo dictionary; keyword names use '_' for ' '."""
    meta = {key.replace('_', ' '): value for key, value in fields.items()}
    meta['info'] = single_file_info() if info is None else info
    return encode(meta)


@pytest.fixture
def single_torrent_bytes():
    return make_torrent(
        announce='http://tracker.example.com/announce',
        comment='test torrent',
        created_by='torrentinfo tests',
        creation_date=1700000000,
    )


@pytest.fixture
def multi_torrent_bytes():
    return make_torrent(multi_file_info(), announce='udp://tracker.example.com:6969/announce')


@pytest.fixture
def torrent_dir(tmp_path, single_torrent_bytes, multi_torrent_bytes):
    (tmp_path / 'b_single.torrent').write_bytes(single_torrent_bytes)
    (tmp_path / 'A_multi.torrent').write_bytes(multi_torrent_bytes)
    (tmp_path / 'notes.txt').write_text('not a torrent')
    return tmp_path
