from dataclasses import dataclass, field

from keyshim.crypto.algorithm import EncryptionAlgorithm


@dataclass(frozen=True)
class KeyMetadata:
    """A specific version of a named master key and the algorithm it implies."""
    name: str
    version: int
    algorithm: EncryptionAlgorithm

    def __post_init__(self):
        if not self.name:
            raise ValueError("Key name must not be empty")
        if not isinstance(self.version, int) or isinstance(self.version, bool):
            raise ValueError(f"Key version must be an int, got {type(self.version).__name__}")
        if self.version < 0:
            raise ValueError(f"Key version must be non-negative, got {self.version}")

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class LocalKey:
    """A data key in both plaintext and wrapped form.

    The plaintext is kept out of repr() so it cannot leak into log lines.
    """
    algorithm: EncryptionAlgorithm
    decrypted_key: bytes = field(repr=False)
    encrypted_key: bytes

    def __post_init__(self):
        if len(self.decrypted_key) != self.algorithm.key_length:
            raise ValueError(
                f"{self.algorithm.name} data keys are {self.algorithm.key_length} bytes, "
                f"got {len(self.decrypted_key)}"
            )


# Alias used by callers that think in envelope encryption terms
DataKey = LocalKey
