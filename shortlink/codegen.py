"""Random short code generation.

Codes are fixed-length strings drawn independently and uniformly from a fixed
62-character alphabet using the operating system's CSPRNG.

Rejection Sampling
==================
::
    ┌─────────────┐
    │ Draw 1 byte │◄─────────┐
    │ (os.urandom)│          │
    └──────┬──────┘          │
           ▼                 │
    ┌─────────────┐   NO     │
    │ byte < 248? ├──────────┘
    └──────┬──────┘  (discard)
           │ YES
           ▼
    ┌─────────────┐
    │ ALPHABET[   │
    │ byte % 62]  │
    └─────────────┘

248 is the largest multiple of 62 not above 256, so every accepted byte maps
onto the alphabet with equal probability. Bytes 248-255 are redrawn.

Entropy Failure
===============
If the random source raises, the generator either fails with
``EntropyUnavailableError`` (default) or, when ``allow_clock_fallback`` is set,
substitutes a byte derived from ``time.perf_counter_ns()`` for that single draw
and logs a warning. The fallback trades unpredictability for liveness and is
off unless ``ENTROPY_FALLBACK`` is enabled.

Code space per domain is 62**9 (about 1.3e16); collisions are rare but not
impossible, so allocation still retries on a uniqueness violation.
"""

__all__ = ["ALPHABET", "CODE_LENGTH", "CODE_PATTERN", "CodeGenerator", "is_valid_code"]

import logging
import os
import re
import time
from collections.abc import Callable

from shortlink.exceptions import EntropyUnavailableError

# digits, then lower case, then upper case
ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
CODE_LENGTH = 9
CODE_PATTERN = re.compile(rf"^[0-9A-Za-z]{{{CODE_LENGTH}}}$")

logger = logging.getLogger("shortlink.codegen")


def is_valid_code(code: str, length: int = CODE_LENGTH, alphabet: str = ALPHABET) -> bool:
    """Return True if ``code`` is exactly ``length`` characters from ``alphabet``."""
    if not isinstance(code, str) or len(code) != length:
        return False
    if alphabet == ALPHABET and length == CODE_LENGTH:
        return CODE_PATTERN.match(code) is not None
    return all(char in alphabet for char in code)


class CodeGenerator:
    """Unbiased random code generator.

    Args:
        length: Default code length.
        alphabet: Characters to draw from. Must hold 2-256 unique characters.
        entropy: Callable returning ``n`` random bytes. Defaults to ``os.urandom``.
        allow_clock_fallback: Substitute a clock-derived byte when ``entropy`` fails.

    Example:
        >>> generator = CodeGenerator()
        >>> len(generator.generate())
        9
    """

    def __init__(
        self,
        length: int = CODE_LENGTH,
        alphabet: str = ALPHABET,
        entropy: Callable[[int], bytes] = os.urandom,
        allow_clock_fallback: bool = False,
    ):
        if length < 1:
            raise ValueError(f"Code length must be positive (given value: {length}).")
        if not 2 <= len(alphabet) <= 256:
            raise ValueError(f"Alphabet must hold 2-256 characters (given size: {len(alphabet)}).")
        if len(set(alphabet)) != len(alphabet):
            raise ValueError("Alphabet characters must be unique.")

        self.length = length
        self.alphabet = alphabet
        self._entropy = entropy
        self._allow_clock_fallback = allow_clock_fallback
        # largest multiple of the alphabet size that fits in a byte
        self._limit = (256 // len(alphabet)) * len(alphabet)

    def generate(self, length: int | None = None) -> str:
        """Return a random code of ``length`` characters (default: ``self.length``).

        Raises:
            EntropyUnavailableError: If the random source fails and the clock
                fallback is disabled.
        """
        size = self.length if length is None else length
        if size < 1:
            raise ValueError(f"Code length must be positive (given value: {size}).")

        base = len(self.alphabet)
        chars = []
        for _ in range(size):
            while True:
                value = self._draw_byte()
                if value < self._limit:
                    chars.append(self.alphabet[value % base])
                    break
        return "".join(chars)

    def _draw_byte(self) -> int:
        try:
            return self._entropy(1)[0]
        except (OSError, NotImplementedError) as exc:
            if not self._allow_clock_fallback:
                raise EntropyUnavailableError("Secure random source failed") from exc
            logger.warning(f"Secure random source failed ({exc}); using clock-derived byte")
            return time.perf_counter_ns() & 0xFF
