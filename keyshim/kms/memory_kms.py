from dataclasses import dataclass, field
from threading import Lock

from keyshim.crypto.algorithm import SUPPORTED_CIPHER
from keyshim.errors import UnknownKey, VersionMismatch
from keyshim.kms import keystore
from keyshim.kms.provider import KMSClient, KeyInfo, KeyProviderKind


@dataclass
class MasterKey:
    cipher: str
    bit_length: int
    materials: list[bytes] = field(default_factory=list)

    def info(self) -> KeyInfo:
        return KeyInfo(self.cipher, self.bit_length, len(self.materials))

    def material(self, name: str, version: int) -> bytes:
        if version < 0 or version >= len(self.materials):
            raise VersionMismatch(
                f"{name} has versions 0..{len(self.materials) - 1}, not {version}"
            )
        return self.materials[version]


class InMemoryKMS(KMSClient):
    """In-process key catalogue.

    Serves as the test double for the shim and as a throwaway KMS for local
    development. Nothing is persisted.
    """

    kind = KeyProviderKind.MEMORY

    def __init__(self):
        self._keys: dict[str, MasterKey] = {}
        self._lock = Lock()

    def create_key(self, name: str, material: bytes, cipher: str = SUPPORTED_CIPHER,
                   bit_length: int | None = None) -> int:
        """Add a master key with `material` as version 0.

        `bit_length` defaults to the material length and may be declared
        differently to mimic what a real KMS reports.
        """
        keystore.check_material(name, material)
        with self._lock:
            if name in self._keys:
                raise ValueError(f"Key {name} already exists")
            declared = len(material) * 8 if bit_length is None else bit_length
            self._keys[name] = MasterKey(cipher, declared, [material])
        return 0

    def roll_new_version(self, name: str, material: bytes) -> int:
        """Append a new version of `name`; returns its version number."""
        keystore.check_material(name, material)
        with self._lock:
            key = self._lookup(name)
            key.materials.append(material)
            return len(key.materials) - 1

    def _lookup(self, name: str) -> MasterKey:
        key = self._keys.get(name)
        if key is None:
            raise UnknownKey(f"Unknown key {name}")
        return key

    def list_keys(self) -> list[str]:
        with self._lock:
            return list(self._keys)

    def get_key_info(self, name: str) -> KeyInfo:
        with self._lock:
            return self._lookup(name).info()

    def wrap_key(self, name: str, version: int, plaintext: bytes) -> bytes:
        with self._lock:
            material = self._lookup(name).material(name, version)
        return keystore.seal(material, name, version, plaintext)

    def unwrap_key(self, name: str, version: int, wrapped: bytes) -> bytes:
        with self._lock:
            material = self._lookup(name).material(name, version)
        return keystore.unseal(material, name, version, wrapped)
