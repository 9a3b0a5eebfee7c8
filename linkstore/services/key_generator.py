"""
Short Key Generator

Draws random keys from [a-zA-Z0-9]. Keys are not derived from the URL or a
counter, so a collision with an existing key is possible and is reported by
the backend on save (ConflictError), never retried here.
"""

import random
import string

KEY_ALPHABET = string.ascii_letters + string.digits
DEFAULT_KEY_LENGTH = 6

# Seeded once per process
_random = random.Random()


class KeyGenerator:
    """Random fixed-length short key source."""

    def __init__(self, length: int = DEFAULT_KEY_LENGTH, rng: random.Random = None):
        if length <= 0:
            raise ValueError("key length must be positive")
        self.length = length
        self._rng = rng or _random

    def generate(self) -> str:
        """
        Generate a short key.

        Returns:
            String of ``length`` characters drawn uniformly from KEY_ALPHABET

        Example:
            KeyGenerator().generate() -> "aZ3kQ9"
        """
        return "".join(self._rng.choice(KEY_ALPHABET) for _ in range(self.length))
