"""Short code generation strategies.

Two strategies are available, selected per deployment by configuration:

- ``random``: fixed-length random base62 codes. Collisions are possible and
  are resolved by the caller retrying the insert with a fresh code.
- ``encoded``: a salted, reversible encoding of the record's numeric id.
  Collision-free by construction, but the id must exist before the code can
  be computed (insert, then assign the code, then save).
"""

import math
import random
import string
from abc import ABC, abstractmethod
from typing import Optional

import xxhash

from .exceptions import ConfigurationError


# Base62 characters (alphanumeric, case-sensitive)
BASE62_CHARS = string.ascii_letters + string.digits  # a-zA-Z0-9
BASE = len(BASE62_CHARS)


def int_to_base62(num: int, length: int = 1) -> str:
    """Convert a non-negative integer to a base62 string, left-padded to ``length``."""
    if num < 0:
        raise ValueError("num must be non-negative")

    result = []
    while num > 0:
        num, remainder = divmod(num, BASE)
        result.append(BASE62_CHARS[remainder])

    return "".join(reversed(result)).rjust(length, BASE62_CHARS[0])


def base62_to_int(code: str) -> int:
    """Convert base62 string to integer."""
    result = 0
    for char in code:
        result = result * BASE + BASE62_CHARS.index(char)
    return result


def is_valid_format(code: str) -> bool:
    """Check if code is a non-empty base62 string."""
    return bool(code) and all(c in BASE62_CHARS for c in code)


class CodeStrategy(ABC):
    """Produces short codes for new records."""

    #: True when generate() needs the record's numeric id
    requires_id: bool = False

    @abstractmethod
    def generate(self, record_id: Optional[int] = None) -> str:
        """Generate a short code.

        Args:
            record_id: Numeric id of the record (only for id-based strategies)
        """


class RandomCodeStrategy(CodeStrategy):
    """Random fixed-length base62 codes."""

    requires_id = False

    def __init__(self, length: int = 6):
        if length < 1:
            raise ConfigurationError("Short code length must be positive")
        self.length = length

    def generate(self, record_id: Optional[int] = None) -> str:
        return "".join(random.choices(BASE62_CHARS, k=self.length))


class EncodedIdStrategy(CodeStrategy):
    """Salted, reversible encoding of numeric record ids.

    An id is mapped with an affine permutation ``(id * mult + salt) mod 62**L``
    and written as an ``L``-character base62 string. ``L`` starts at
    ``min_length`` and only grows for ids that do not fit, so two ids never
    share a code: the permutation is a bijection within each length, and codes
    of different lengths are different strings.
    """

    requires_id = True

    def __init__(self, salt: str, min_length: int = 6, mult: int = 1315423911):
        if not salt:
            raise ConfigurationError("Encoded short codes require a non-empty salt")
        if min_length < 1:
            raise ConfigurationError("Short code length must be positive")
        # 62 = 2 * 31, so coprimality with 62 covers every power of 62
        if math.gcd(mult, BASE) != 1:
            raise ConfigurationError(f"Multiplier must be coprime with {BASE} (given value: {mult})")

        self.min_length = min_length
        self.mult = mult
        self._salt_hash = xxhash.xxh64_intdigest(salt)

    def _length_for(self, record_id: int) -> int:
        length = self.min_length
        while record_id >= BASE**length:
            length += 1
        return length

    def generate(self, record_id: Optional[int] = None) -> str:
        if record_id is None:
            raise ValueError("EncodedIdStrategy needs a record id")
        if record_id < 0:
            raise ValueError(f"Record id must be non-negative (given value: {record_id})")

        length = self._length_for(record_id)
        space = BASE**length
        permuted = (record_id * self.mult + self._salt_hash % space) % space
        return int_to_base62(permuted, length)

    def decode(self, code: str) -> int:
        """Recover the record id from a code produced by generate()."""
        if len(code) < self.min_length or not is_valid_format(code):
            raise ValueError(f"Not an encoded short code: {code!r}")

        space = BASE ** len(code)
        record_id = ((base62_to_int(code) - self._salt_hash % space) * pow(self.mult, -1, space)) % space

        if self._length_for(record_id) != len(code):
            raise ValueError(f"Not an encoded short code: {code!r}")
        return record_id


def create_code_strategy(name: str, length: int = 6, salt: str = "") -> CodeStrategy:
    """Build the configured code strategy.

    Args:
        name: ``random`` or ``encoded``
        length: Code length (minimum length for ``encoded``)
        salt: Secret salt for ``encoded``
    """
    name = name.strip().lower()
    if name == "random":
        return RandomCodeStrategy(length=length)
    if name == "encoded":
        return EncodedIdStrategy(salt=salt, min_length=length)
    raise ConfigurationError(f"Unknown code strategy: {name!r}")
