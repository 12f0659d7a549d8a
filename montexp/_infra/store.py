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
"""Word-addressed big-integer storage banks."""

from enum import Enum
from typing import Dict, Tuple

import numpy as np
from numpy.typing import NDArray

from montexp._infra.validation import MAX_WORDS
from montexp._infra.words import _assert_valid_word, int_to_words, words_to_int


class Bank(Enum):
    """The storage banks of the engine.

    RESULT doubles as the accumulator `Z` and POWER holds the running square `P`.
    RESIDUE holds the Montgomery conversion constant r^2 mod N.
    """

    MODULUS = 'modulus'
    EXPONENT = 'exponent'
    MESSAGE = 'message'
    RESULT = 'result'
    POWER = 'power'
    RESIDUE = 'residue'


class Destination(Enum):
    """Where the Result/Power write port sends the multiplier output."""

    RESULT = 'result'
    POWER = 'power'
    NOWHERE = 'nowhere'


_DESTINATION_BANKS = {Destination.RESULT: Bank.RESULT, Destination.POWER: Bank.POWER}


class BigIntegerStore:
    """A set of banks, each a buffer of `max_words` 32-bit words.

    Each bank offers two independent read ports (`read_pair`) and one write port (`write`).
    Words are addressed most significant first: an L-word integer occupies indices
    `0 .. L-1` with its least significant word at `L-1`.

    Args:
        max_words: The number of words in every bank.
    """

    def __init__(self, max_words: int = MAX_WORDS):
        self.max_words = max_words
        self._banks: Dict[Bank, NDArray[np.uint32]] = {
            bank: np.zeros(max_words, dtype=np.uint32) for bank in Bank
        }

    def _check_index(self, bank: Bank, index: int):
        if not isinstance(bank, Bank):
            raise TypeError(f"Expected a Bank, not {bank!r}")
        if not 0 <= index < self.max_words:
            raise IndexError(f"Index {index} out of range for {bank.name} ({self.max_words} words)")

    def read(self, bank: Bank, index: int) -> int:
        self._check_index(bank, index)
        return int(self._banks[bank][index])

    def read_pair(self, bank: Bank, index_a: int, index_b: int) -> Tuple[int, int]:
        """Read two words of one bank through its two read ports."""
        return self.read(bank, index_a), self.read(bank, index_b)

    def write(self, bank: Bank, index: int, word: int):
        self._check_index(bank, index)
        _assert_valid_word(word)
        self._banks[bank][index] = word

    def route(self, destination: Destination, index: int, word: int):
        """Drive the Result/Power write port; `Destination.NOWHERE` drops the word."""
        if destination is Destination.NOWHERE:
            return
        self.write(_DESTINATION_BANKS[destination], index, word)

    def load(self, bank: Bank, value: int, n_words: int):
        """Write `value` into the first `n_words` words of `bank`."""
        self._check_index(bank, n_words - 1)
        self._banks[bank][:n_words] = int_to_words(value, n_words)

    def dump(self, bank: Bank, n_words: int) -> int:
        """Read the integer held in the first `n_words` words of `bank`."""
        self._check_index(bank, n_words - 1)
        return words_to_int(self._banks[bank][:n_words])

    def words(self, bank: Bank, n_words: int) -> NDArray[np.uint32]:
        """A copy of the first `n_words` words of `bank`."""
        self._check_index(bank, n_words - 1)
        return self._banks[bank][:n_words].copy()

    def clear(self):
        for buf in self._banks.values():
            buf[:] = 0
