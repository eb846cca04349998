import pytest

from keyshim.kms.memory_kms import InMemoryKMS

PII_V0 = bytes(range(0x00, 0x10))
PII_V1 = bytes(range(0x10, 0x20))
SECRET_V0 = bytes(range(0x20, 0x30))


@pytest.fixture
def catalogue():
    """Two AES-128 keys: pii rotated once, secret with a single version."""
    kms = InMemoryKMS()
    kms.create_key("pii", PII_V0)
    kms.roll_new_version("pii", PII_V1)
    kms.create_key("secret", SECRET_V0)
    return kms
