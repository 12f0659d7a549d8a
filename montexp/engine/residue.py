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
"""Residue calculators: produce r^2 mod N, the constant that moves values into Montgomery form.

A residue calculator is a start/ready/result capability clocked by the exponentiation
controller. On completion it has written r^2 mod N, with r = 2^(32 L), into the RESIDUE bank.
"""

import abc
import logging
from typing import Optional, Union

from numpy.typing import NDArray

from montexp._infra.config import ResidueMode
from montexp._infra.store import Bank, BigIntegerStore
from montexp._infra.words import int_to_words, WORD_BITS

logger = logging.getLogger(__name__)


class ResidueCalculator(metaclass=abc.ABCMeta):
    """Abstract base class for residue calculators.

    Implementors override `_begin` to set up a computation for `self.n_words` and
    `self.modulus`, and `_step` to do one tick of work, calling `_finish` with the residue
    once it has been written to the store.
    """

    def __init__(self, store: BigIntegerStore):
        self.store = store
        self.n_words = 0
        self.modulus = 0
        self.result: Optional[int] = None
        self.cycles = 0
        self._active = False

    @property
    def ready(self) -> bool:
        return self.result is not None and not self._active

    @property
    def busy(self) -> bool:
        return self._active

    def start(self, n_words: int):
        """Begin computing r^2 mod N for the modulus currently in the MODULUS bank."""
        self.n_words = n_words
        self.modulus = self.store.dump(Bank.MODULUS, n_words)
        self.result = None
        self.cycles = 0
        self._active = True
        self._begin()

    def reset(self):
        self._active = False
        self.result = None

    def tick(self):
        if not self._active:
            return
        self.cycles += 1
        self._step()

    def _finish(self, residue: int):
        self.result = residue
        self._active = False
        logger.debug("Residue for %d word(s) ready after %d cycles", self.n_words, self.cycles)

    @abc.abstractmethod
    def _begin(self): ...

    @abc.abstractmethod
    def _step(self): ...


class DoublingResidueCalculator(ResidueCalculator):
    """Computes r^2 mod N by `64 L` doublings of 1, each followed by a conditional subtraction.

    One doubling happens per tick. The residue is then written one word per tick, so a
    computation takes `65 L` ticks.
    """

    def _begin(self):
        self._x = 1
        self._doublings_left = 2 * WORD_BITS * self.n_words
        self._words: Optional[NDArray] = None
        self._pos = 0

    def _step(self):
        if self._doublings_left:
            self._x <<= 1
            if self._x >= self.modulus:
                self._x -= self.modulus
            self._doublings_left -= 1
            if not self._doublings_left:
                self._words = int_to_words(self._x, self.n_words)
            return

        self.store.write(Bank.RESIDUE, self._pos, int(self._words[self._pos]))
        self._pos += 1
        if self._pos == self.n_words:
            self._finish(self._x)


class DirectResidueCalculator(ResidueCalculator):
    """Computes and stores r^2 mod N in a single tick."""

    def _begin(self):
        pass

    def _step(self):
        residue = pow(2, 2 * WORD_BITS * self.n_words, self.modulus)
        self.store.load(Bank.RESIDUE, residue, self.n_words)
        self._finish(residue)


def make_residue_calculator(
    store: BigIntegerStore, mode: Union[ResidueMode, str] = ResidueMode.DOUBLING
) -> ResidueCalculator:
    mode = ResidueMode(mode)
    if mode is ResidueMode.DIRECT:
        return DirectResidueCalculator(store)
    return DoublingResidueCalculator(store)
