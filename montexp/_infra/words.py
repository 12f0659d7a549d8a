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
"""32-bit words, the carry-propagate word adder, and the big-endian word order.

Every big integer in this package is stored as a sequence of `WORD_BITS`-bit words
where index 0 holds the most significant word and index `n_words - 1` holds the least
significant word. The bit-serial multiplier relies on this ordering.
"""

from typing import Sequence, Tuple, Union

import attrs
import numpy as np
from numpy.typing import NDArray

WORD_BITS = 32
WORD_MASK = (1 << WORD_BITS) - 1

WordT = Union[int, np.integer]


def _assert_valid_word(word: WordT, debug_str: str = 'word'):
    if not isinstance(word, (int, np.integer)):
        raise ValueError(f"{debug_str} should be an integer, not {word!r}")
    if word < 0 or word > WORD_MASK:
        raise ValueError(f"{debug_str}={word} does not fit in a {WORD_BITS}-bit word")


def add_words(a: WordT, b: WordT, carry_in: int = 0) -> Tuple[int, int]:
    """Add two words and an incoming carry.

    Returns:
        The `(sum, carry_out)` pair where `sum` is the low `WORD_BITS` bits of
        `a + b + carry_in` and `carry_out` is the bit above them.
    """
    _assert_valid_word(a, 'a')
    _assert_valid_word(b, 'b')
    if carry_in not in (0, 1):
        raise ValueError(f"carry_in must be 0 or 1, not {carry_in!r}")
    total = int(a) + int(b) + carry_in
    return total & WORD_MASK, total >> WORD_BITS


def subtract_words(a: WordT, b: WordT, borrow_in: int = 0) -> Tuple[int, int]:
    """Subtract `b` and an incoming borrow from `a`.

    This is `add_words(a, ~b, 1 - borrow_in)` with the carry inverted into a borrow.
    """
    _assert_valid_word(b, 'b')
    if borrow_in not in (0, 1):
        raise ValueError(f"borrow_in must be 0 or 1, not {borrow_in!r}")
    diff, carry = add_words(a, WORD_MASK ^ int(b), 1 - borrow_in)
    return diff, 1 - carry


@attrs.frozen
class WordAdder:
    """Combinational `WORD_BITS`-bit adder with carry in and carry out.

    Calling the adder with `subtract=True` computes `a - b - carry_in` and reports a
    borrow instead of a carry.
    """

    subtract: bool = False

    def __call__(self, a: WordT, b: WordT, carry_in: int = 0) -> Tuple[int, int]:
        if self.subtract:
            return subtract_words(a, b, carry_in)
        return add_words(a, b, carry_in)


def int_to_words(x: int, n_words: int) -> NDArray[np.uint32]:
    """Split `x` into `n_words` words, most significant word first."""
    if not isinstance(x, (int, np.integer)):
        raise ValueError(f"x should be an integer, not {x!r}")
    x = int(x)
    if x < 0:
        raise ValueError(f"Negative value {x} cannot be stored as words")
    if x >> (WORD_BITS * n_words):
        raise ValueError(f"{x} does not fit in {n_words} word(s)")
    words = np.zeros(n_words, dtype=np.uint32)
    for i in range(n_words - 1, -1, -1):
        words[i] = x & WORD_MASK
        x >>= WORD_BITS
    return words


def words_to_int(words: Sequence[WordT]) -> int:
    """Combine words, most significant word first, into an integer."""
    x = 0
    for i, word in enumerate(words):
        _assert_valid_word(word, f'words[{i}]')
        x = (x << WORD_BITS) | int(word)
    return x
