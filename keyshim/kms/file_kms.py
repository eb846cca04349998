import base64
import json
import os
import tempfile
from threading import Lock

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keyshim.crypto.algorithm import SUPPORTED_CIPHER
from keyshim.errors import KeyServiceUnavailable, UnknownKey
from keyshim.kms import keystore
from keyshim.kms.memory_kms import MasterKey
from keyshim.kms.provider import KMSClient, KeyInfo, KeyProviderKind


class FileKMS(KMSClient):
    """Simple file-backed KMS for local testing only.

    Master key versions live in a JSON keystore (protected via file perms)
    and data keys are wrapped with AESGCM. The file is re-read on every call
    so rotations made by another process are picked up.
    """

    kind = KeyProviderKind.FILE

    def __init__(self, key_path: str):
        self.key_path = key_path
        self._lock = Lock()
        if not os.path.exists(key_path):
            self._store({})

    def _load(self) -> dict[str, MasterKey]:
        with open(self.key_path, 'r') as f:
            raw = f.read()
        try:
            data = json.loads(raw)
            return {
                name: MasterKey(
                    entry["cipher"],
                    entry["bit_length"],
                    [base64.b64decode(m, validate=True) for m in entry["versions"]],
                )
                for name, entry in data.get("keys", {}).items()
            }
        # JSONDecodeError and binascii.Error are ValueErrors
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise KeyServiceUnavailable(f"Keystore {self.key_path} is unreadable") from e

    def _store(self, keys: dict[str, MasterKey]):
        data = {
            "keys": {
                name: {
                    "cipher": key.cipher,
                    "bit_length": key.bit_length,
                    "versions": [base64.b64encode(m).decode('utf-8') for m in key.materials],
                }
                for name, key in keys.items()
            }
        }
        directory = os.path.dirname(os.path.abspath(self.key_path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.keystore-')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.key_path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def _lookup(self, name: str) -> MasterKey:
        key = self._load().get(name)
        if key is None:
            raise UnknownKey(f"Unknown key {name}")
        return key

    def create_key(self, name: str, material: bytes | None = None,
                   cipher: str = SUPPORTED_CIPHER, bit_length: int | None = None) -> int:
        """Add a master key; fresh 256 bit material is generated when none is given."""
        if material is None:
            material = AESGCM.generate_key(bit_length=256)
        keystore.check_material(name, material)
        with self._lock:
            keys = self._load()
            if name in keys:
                raise ValueError(f"Key {name} already exists")
            declared = len(material) * 8 if bit_length is None else bit_length
            keys[name] = MasterKey(cipher, declared, [material])
            self._store(keys)
        return 0

    def roll_new_version(self, name: str, material: bytes | None = None) -> int:
        with self._lock:
            keys = self._load()
            key = keys.get(name)
            if key is None:
                raise UnknownKey(f"Unknown key {name}")
            if material is None:
                material = AESGCM.generate_key(bit_length=len(key.materials[-1]) * 8)
            keystore.check_material(name, material)
            key.materials.append(material)
            self._store(keys)
            return len(key.materials) - 1

    def list_keys(self) -> list[str]:
        return list(self._load())

    def get_key_info(self, name: str) -> KeyInfo:
        return self._lookup(name).info()

    def wrap_key(self, name: str, version: int, plaintext: bytes) -> bytes:
        material = self._lookup(name).material(name, version)
        return keystore.seal(material, name, version, plaintext)

    def unwrap_key(self, name: str, version: int, wrapped: bytes) -> bytes:
        material = self._lookup(name).material(name, version)
        return keystore.unseal(material, name, version, wrapped)
