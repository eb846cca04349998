from enum import Enum

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from keyshim.errors import UnsupportedAlgorithm

# The only master key transform the column encryption layer accepts
SUPPORTED_CIPHER = "AES/CTR/NoPadding"

IV_LENGTH = 16


class EncryptionAlgorithm(Enum):
    """Data key algorithms available to column encryption.

    Each member carries (family, mode, key length in bytes, serialization id).
    """
    AES_CTR_128 = ("AES", "CTR/NoPadding", 16, 1)
    AES_CTR_256 = ("AES", "CTR/NoPadding", 32, 2)

    def __init__(self, family: str, mode: str, key_length: int, serialization: int):
        self.family = family
        self.mode = mode
        self.key_length = key_length
        self.serialization = serialization

    @property
    def transform(self) -> str:
        return f"{self.family}/{self.mode}"

    @property
    def iv_length(self) -> int:
        return IV_LENGTH

    @classmethod
    def from_serialization(cls, serialization: int) -> "EncryptionAlgorithm":
        for algorithm in cls:
            if algorithm.serialization == serialization:
                return algorithm
        raise UnsupportedAlgorithm(f"Unknown encryption algorithm id {serialization}")

    def create_cipher(self, key: bytes, iv: bytes) -> Cipher:
        """Build an AES-CTR cipher for a data key of this algorithm."""
        if len(key) != self.key_length:
            raise ValueError(
                f"{self.name} needs a {self.key_length} byte key, got {len(key)} bytes"
            )
        if len(iv) != self.iv_length:
            raise ValueError(f"IV must be exactly {self.iv_length} bytes, got {len(iv)} bytes")
        return Cipher(algorithms.AES(key), modes.CTR(iv))


def find_algorithm(cipher: str, bit_length: int) -> EncryptionAlgorithm:
    """
    Resolve the data key algorithm for a master key.

    Args:
        cipher (str): Cipher transform the KMS reports for the master key.
        bit_length (int): Key length the KMS reports, in bits.

    Returns:
        EncryptionAlgorithm: The matching algorithm.

    Raises:
        UnsupportedAlgorithm: For any other cipher, or an unsupported length.
    """
    if cipher != SUPPORTED_CIPHER:
        raise UnsupportedAlgorithm(
            f"Column encryption only supports {SUPPORTED_CIPHER} and not {cipher}"
        )
    if bit_length == 128:
        return EncryptionAlgorithm.AES_CTR_128
    # Some KMS backends report 512 for a 256 bit key held in a doubled buffer
    if bit_length in (256, 512):
        return EncryptionAlgorithm.AES_CTR_256
    raise UnsupportedAlgorithm(f"Column encryption does not support {bit_length} bit keys")
