import logging
import os
import random

logger = logging.getLogger(__name__)


class SystemRandomSource:
    """Operating system CSPRNG. The only source production code should use."""

    def random_bytes(self, length: int) -> bytes:
        return os.urandom(length)


class SeededRandomSource:
    """
    Deterministic byte source so tests know which data keys will come out.
    Must only be used in unit tests!
    """

    def __init__(self, seed: int):
        self._random = random.Random(seed)
        logger.warning("Seeded random source in use; generated data keys are predictable")

    def random_bytes(self, length: int) -> bytes:
        return self._random.randbytes(length)
