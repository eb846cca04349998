import json
import os
import stat

import pytest

from keyshim.errors import DecryptionFailed, KeyServiceUnavailable, UnknownKey, VersionMismatch
from keyshim.kms.file_kms import FileKMS
from keyshim.kms.provider import KeyInfo
from keyshim.shim.key_provider import KeyProviderShim


def test_file_kms_wrap_unwrap(tmp_path):
    kms = FileKMS(str(tmp_path / 'kms.json'))
    kms.create_key('pii')
    dek = os.urandom(16)
    wrapped = kms.wrap_key('pii', 0, dek)
    assert kms.unwrap_key('pii', 0, wrapped) == dek


def test_keystore_permissions(tmp_path):
    path = tmp_path / 'kms.json'
    FileKMS(str(path))
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_keys_survive_reopen(tmp_path):
    path = str(tmp_path / 'kms.json')
    kms = FileKMS(path)
    kms.create_key('pii', bytes(range(16)))
    assert kms.roll_new_version('pii') == 1
    kms.create_key('secret')
    wrapped = kms.wrap_key('pii', 1, b'k' * 16)

    reopened = FileKMS(path)
    assert sorted(reopened.list_keys()) == ['pii', 'secret']
    assert reopened.get_key_info('pii') == KeyInfo('AES/CTR/NoPadding', 128, 2)
    assert reopened.get_key_info('secret') == KeyInfo('AES/CTR/NoPadding', 256, 1)
    assert reopened.unwrap_key('pii', 1, wrapped) == b'k' * 16


def test_keystore_holds_no_plaintext_data_keys(tmp_path):
    path = tmp_path / 'kms.json'
    kms = FileKMS(str(path))
    kms.create_key('pii')
    kms.wrap_key('pii', 0, b'\xaa' * 32)
    data = json.loads(path.read_text())
    assert list(data['keys']) == ['pii']
    assert len(data['keys']['pii']['versions']) == 1


def test_file_kms_errors(tmp_path):
    kms = FileKMS(str(tmp_path / 'kms.json'))
    kms.create_key('pii')
    with pytest.raises(UnknownKey):
        kms.get_key_info('missing')
    with pytest.raises(UnknownKey):
        kms.roll_new_version('missing')
    with pytest.raises(VersionMismatch):
        kms.wrap_key('pii', 1, b'k' * 16)
    with pytest.raises(DecryptionFailed):
        kms.unwrap_key('pii', 0, b'short')
    with pytest.raises(ValueError):
        kms.create_key('pii')
    with pytest.raises(ValueError):
        kms.create_key('odd', b'x' * 20)


@pytest.mark.parametrize("content", [
    '{not json',
    '{"keys": {"pii": {"cipher": "AES/CTR/NoPadding"}}}',
    '{"keys": {"pii": {"cipher": "AES/CTR/NoPadding", "bit_length": 128, "versions": ["!!"]}}}',
    '[]',
])
def test_corrupt_keystore_is_unavailable(tmp_path, content):
    path = tmp_path / 'kms.json'
    kms = FileKMS(str(path))
    path.write_text(content)
    with pytest.raises(KeyServiceUnavailable):
        kms.list_keys()
    with pytest.raises(KeyServiceUnavailable):
        KeyProviderShim(kms).get_key_names()
