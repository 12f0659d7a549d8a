#  Copyright 2025 Google LLC
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      https://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
"""Word-array data type definitions."""

import abc
from typing import Any, Iterable, Optional, Sequence

import attrs
import numpy as np
from numpy.typing import NDArray

from montexp._infra.words import int_to_words, WORD_BITS, words_to_int
from montexp.symbolics import is_symbolic, SymbolicInt


class WordDType(metaclass=abc.ABCMeta):
    """The abstract interface for values stored as a sequence of words."""

    n_words: SymbolicInt

    @property
    def bitsize(self) -> SymbolicInt:
        return self.n_words * WORD_BITS

    @abc.abstractmethod
    def get_classical_domain(self) -> Iterable[Any]:
        """Yields all possible classical values representable by this type."""

    @abc.abstractmethod
    def to_words(self, x) -> NDArray[np.uint32]:
        """Yields the words of x, most significant word first."""

    @abc.abstractmethod
    def from_words(self, words: Sequence[int]):
        """Combine words to form x."""

    @abc.abstractmethod
    def assert_valid_classical_val(self, val: Any, debug_str: str = 'val'):
        """Raises an exception if `val` is not a valid classical value for this type.

        Args:
            val: A classical value that should be in the domain of this type.
            debug_str: Optional debugging information to use in exception messages.
        """

    def is_symbolic(self) -> bool:
        return is_symbolic(self.n_words)

    def __str__(self):
        return f'{self.__class__.__name__}({self.n_words})'


@attrs.frozen
class BigUInt(WordDType):
    """Unsigned integer held in a fixed number of words.

    Here (and throughout montexp), we use a big-endian word convention. The most significant
    word is at index 0.

    Attributes:
        n_words: The number of 32-bit words used to represent the integer.
    """

    n_words: SymbolicInt

    @property
    def radix(self) -> SymbolicInt:
        return 2**self.bitsize

    def get_classical_domain(self) -> Iterable[Any]:
        return range(2**self.bitsize)

    def to_words(self, x: int) -> NDArray[np.uint32]:
        self.assert_valid_classical_val(x)
        return int_to_words(x, int(self.n_words))

    def from_words(self, words: Sequence[int]) -> int:
        if len(words) != self.n_words:
            raise ValueError(f"Expected {self.n_words} words, got {len(words)}")
        return words_to_int(words)

    def assert_valid_classical_val(self, val: int, debug_str: str = 'val'):
        if not isinstance(val, (int, np.integer)):
            raise ValueError(f"{debug_str} should be an integer, not {val!r}")
        if val < 0:
            raise ValueError(f"Negative classical value encountered in {debug_str}")
        if val >= 2**self.bitsize:
            raise ValueError(f"Too-large classical value encountered in {debug_str}")


@attrs.frozen
class MontgomeryUInt(WordDType):
    """Montgomery form of an unsigned integer held in a fixed number of words.

    In order to convert an unsigned integer from a finite field x % p into Montgomery form you
    first must choose a value r > p where gcd(r, p) = 1. We use r = 2^(32 * n_words), so the
    modulus must be odd.

    Conversion to Montgomery form:
        [x] = (x * r) % p

    Conversion from Montgomery form to normal form:
        x = REDC([x])

    Attributes:
        n_words: The number of 32-bit words used to represent the integer.
        modulus: The odd modulus p.

    References:
        [Montgomery modular multiplication](https://en.wikipedia.org/wiki/Montgomery_modular_multiplication).
    """

    n_words: SymbolicInt
    modulus: Optional[SymbolicInt] = None

    @property
    def radix(self) -> SymbolicInt:
        return 2**self.bitsize

    def get_classical_domain(self) -> Iterable[Any]:
        if self.modulus is None or is_symbolic(self.modulus):
            return range(2**self.bitsize)
        return range(int(self.modulus))

    def to_words(self, x: int) -> NDArray[np.uint32]:
        self.assert_valid_classical_val(x)
        return int_to_words(x, int(self.n_words))

    def from_words(self, words: Sequence[int]) -> int:
        if len(words) != self.n_words:
            raise ValueError(f"Expected {self.n_words} words, got {len(words)}")
        return words_to_int(words)

    def assert_valid_classical_val(self, val: int, debug_str: str = 'val'):
        if not isinstance(val, (int, np.integer)):
            raise ValueError(f"{debug_str} should be an integer, not {val!r}")
        if val < 0:
            raise ValueError(f"Negative classical value encountered in {debug_str}")
        bound = 2**self.bitsize if self.modulus is None else self.modulus
        if val >= bound:
            raise ValueError(f"Too-large classical value encountered in {debug_str}")

    @property
    def _n_prime(self) -> int:
        """-p^-1 mod r, the REDC multiplier."""
        return (-pow(int(self.modulus), -1, int(self.radix))) % int(self.radix)

    def _assert_concrete(self):
        assert self.modulus is not None and not is_symbolic(self.modulus, self.n_words)
        assert self.modulus % 2 == 1

    @property
    def r_squared(self) -> int:
        """r^2 mod p, the constant that moves values into Montgomery form."""
        self._assert_concrete()
        return pow(2, 2 * int(self.bitsize), int(self.modulus))

    def redc(self, t: int) -> int:
        """Returns (t + m * p) / r for the unique m < r making the division exact.

        For t < p * r the result is below 2p; no final subtraction is applied.

        Args:
            t: A non-negative integer, typically the product of two Montgomery form integers.
        """
        self._assert_concrete()
        r_bits = int(self.bitsize)
        m = ((t & (int(self.radix) - 1)) * self._n_prime) & (int(self.radix) - 1)
        return (t + m * int(self.modulus)) >> r_bits

    def montgomery_product(self, xm: int, ym: int) -> int:
        """Returns the modular product of two integers in montgomery form.

        Args:
            xm: The first montgomery form integer for the product.
            ym: The second montgomery form integer for the product.
        """
        s = self.redc(xm * ym)
        if s >= self.modulus:
            s -= self.modulus
        return s

    def montgomery_inverse(self, xm: int) -> int:
        """Returns the modular inverse of an integer in montgomery form.

        Args:
            xm: An integer in montgomery form.
        """
        self._assert_concrete()
        return ((pow(xm, -1, self.modulus)) * pow(2, 2 * self.bitsize, int(self.modulus))) % (
            self.modulus
        )

    def montgomery_to_uint(self, xm: int) -> int:
        """Converts an integer in montgomery form to a normal form integer.

        Args:
            xm: An integer in montgomery form.
        """
        return self.montgomery_product(xm, 1)

    def uint_to_montgomery(self, x: int) -> int:
        """Converts an integer into montgomery form.

        Args:
            x: An integer.
        """
        return self.montgomery_product(x % self.modulus, self.r_squared)


def n_words_for(value: int) -> int:
    """The smallest number of words (at least one) that can hold `value`."""
    return max(1, -(-int(value).bit_length() // WORD_BITS))

