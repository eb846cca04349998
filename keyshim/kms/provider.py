from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class KeyProviderKind(Enum):
    UNKNOWN = 0
    MEMORY = 1
    FILE = 2
    AWS = 3


@dataclass(frozen=True)
class KeyInfo:
    """What the KMS reports about a named master key."""
    cipher: str
    bit_length: int
    versions: int


class KMSClient(ABC):
    """Abstract KMS client interface for envelope encryption."""

    kind = KeyProviderKind.UNKNOWN

    @abstractmethod
    def list_keys(self) -> list[str]:
        """Return the names of all master keys in the catalogue."""

    @abstractmethod
    def get_key_info(self, name: str) -> KeyInfo:
        """Return cipher, bit length and version count for `name`.
        Raises UnknownKey if the catalogue has no such key.
        """

    @abstractmethod
    def wrap_key(self, name: str, version: int, plaintext: bytes) -> bytes:
        """Encrypt a data key under master key `name` at `version`.
        The result is what must be stored alongside the encrypted data.
        """

    @abstractmethod
    def unwrap_key(self, name: str, version: int, wrapped: bytes) -> bytes:
        """Recover a data key wrapped by wrap_key with the same name and version.
        Raises DecryptionFailed if the ciphertext does not authenticate.
        """
