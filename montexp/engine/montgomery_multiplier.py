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
"""Bit-serial Montgomery multiplication as a tick-driven automaton."""

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple, Union

import attrs
import numpy as np

from montexp._infra.clock import run_until_ready
from montexp._infra.config import EngineConfig, MultiplierMode
from montexp._infra.data_types import MontgomeryUInt, n_words_for
from montexp._infra.store import Bank, BigIntegerStore, Destination
from montexp._infra.validation import validate_length, validate_modulus, validate_operand
from montexp._infra.words import int_to_words, WORD_BITS, WordAdder, words_to_int

logger = logging.getLogger(__name__)


class OperandSource(Enum):
    """Where the multiplier reads an operand from.

    ONE is the constant 1: word `L-1` reads as 1 and every other word as 0.
    ACCUMULATOR is the Result bank (`Z`); POWER is the Power bank (`P`).
    """

    ONE = 'one'
    RESIDUE = 'residue'
    MESSAGE = 'message'
    ACCUMULATOR = 'accumulator'
    POWER = 'power'


_SOURCE_BANKS = {
    OperandSource.RESIDUE: Bank.RESIDUE,
    OperandSource.MESSAGE: Bank.MESSAGE,
    OperandSource.ACCUMULATOR: Bank.RESULT,
    OperandSource.POWER: Bank.POWER,
}


class MultiplierState(Enum):
    IDLE = 'idle'
    INIT_ACCUMULATOR = 'init_accumulator'
    LOOP_SETUP = 'loop_setup'
    LOOP_ITERATE = 'loop_iterate'
    ADD_MODULUS = 'add_modulus'
    ADD_OPERAND = 'add_operand'
    SHIFT_RIGHT = 'shift_right'
    REDUCE = 'reduce'
    EMIT = 'emit'
    DONE = 'done'


@attrs.frozen
class MultiplyRequest:
    """The operand and destination selection latched by `calculate`."""

    a: OperandSource = attrs.field(converter=OperandSource)
    b: OperandSource = attrs.field(converter=OperandSource)
    destination: Destination = attrs.field(converter=Destination)
    n_words: int


class MontgomeryMultiplier:
    r"""Computes $a \cdot b \cdot r^{-1} \mod N$ with $r = 2^{32 L}$, one tick at a time.

    The accumulator `S` starts at zero. For each of the `32 L` bits `b_i` of operand `b`, from
    least to most significant:

     1. `q = S_0 xor (a_0 and b_i)` where `S_0` and `a_0` are the low bits of `S` and `a`.
     2. If `q` is set, add the modulus into `S` word by word (`L` cycles).
     3. If `b_i` is set, add `a` into `S` word by word (`L` cycles).
     4. Shift `S` right by one bit (`L` cycles).

    Additions run through a `WordAdder` from the least significant word (index `L-1`) up,
    the carry out of word 0 is kept as extra high bits of `S`. Afterwards `S < 2N`; one
    more pass computes `S - N` and the emit pass writes whichever of the two is reduced
    through the store's Result/Power write port. `ready` is raised for one tick once the
    last word is written.

    The operands must satisfy `0 <= a, b < N < r` with `N` odd; this is not checked here.
    Use `montgomery_multiply` for a validated one-shot product.

    Args:
        store: The banks to read operands and the modulus from and to write the product to.
        mode: How much work to do per tick, see `MultiplierMode`.
    """

    def __init__(
        self,
        store: BigIntegerStore,
        mode: Union[MultiplierMode, str] = MultiplierMode.CYCLE,
    ):
        self.store = store
        self.mode = MultiplierMode(mode)
        self.state = MultiplierState.IDLE
        self.cycles = 0
        self.product: Optional[int] = None
        self._pending: Optional[MultiplyRequest] = None
        self._request: Optional[MultiplyRequest] = None
        self._acc = np.zeros(0, dtype=np.uint32)
        self._diff = np.zeros(0, dtype=np.uint32)
        self._top = 0
        self._carry = 0
        self._pos = 0
        self._bits_left = 0
        self._bit_index = 0
        self._q = 0
        self._b = 0
        self._use_diff = False
        self._adder = WordAdder()
        self._subtractor = WordAdder(subtract=True)
        self._handlers: Dict[MultiplierState, Callable[[], None]] = {
            MultiplierState.IDLE: self._idle,
            MultiplierState.INIT_ACCUMULATOR: self._init_accumulator,
            MultiplierState.LOOP_SETUP: self._loop_setup,
            MultiplierState.LOOP_ITERATE: self._loop_iterate,
            MultiplierState.ADD_MODULUS: self._add_modulus,
            MultiplierState.ADD_OPERAND: self._add_operand,
            MultiplierState.SHIFT_RIGHT: self._shift_right,
            MultiplierState.REDUCE: self._reduce,
            MultiplierState.EMIT: self._emit,
            MultiplierState.DONE: self._done,
        }

    @property
    def busy(self) -> bool:
        return self.state not in (MultiplierState.IDLE, MultiplierState.DONE)

    @property
    def ready(self) -> bool:
        return self.state is MultiplierState.DONE

    def calculate(
        self,
        a: OperandSource,
        b: OperandSource,
        destination: Destination,
        n_words: int,
    ) -> bool:
        """Raise the calculate line with the given operand and destination selection.

        The request is sampled on the next tick that finds the multiplier in IDLE. A request
        made while a product is in progress is dropped.

        Returns:
            Whether the request was latched.
        """
        if self.busy or self._pending is not None:
            logger.warning("Ignoring calculate request while %s", self.state.name)
            return False
        self._pending = MultiplyRequest(a, b, destination, n_words)
        return True

    def reset(self):
        """Return to IDLE, discarding any product in progress."""
        self.state = MultiplierState.IDLE
        self._pending = None
        self._request = None
        self.product = None

    def tick(self):
        if self.state not in (MultiplierState.IDLE, MultiplierState.DONE):
            self.cycles += 1
        self._handlers[self.state]()

    # ----------------------------------------------------------------------------------
    # Operand access

    @property
    def _n_words(self) -> int:
        return self._request.n_words

    def _operand_word(self, source: OperandSource, index: int) -> int:
        if source is OperandSource.ONE:
            return 1 if index == self._n_words - 1 else 0
        return self.store.read(_SOURCE_BANKS[source], index)

    def _operand_words(self, index_a: int, index_b: int) -> Tuple[int, int]:
        """Read word `index_a` of operand `a` and word `index_b` of operand `b` together."""
        a, b = self._request.a, self._request.b
        if a is b and a is not OperandSource.ONE:
            return self.store.read_pair(_SOURCE_BANKS[a], index_a, index_b)
        return self._operand_word(a, index_a), self._operand_word(b, index_b)

    def _operand_value(self, source: OperandSource) -> int:
        if source is OperandSource.ONE:
            return 1
        return self.store.dump(_SOURCE_BANKS[source], self._n_words)

    def _modulus_word(self, index: int) -> int:
        return self.store.read(Bank.MODULUS, index)

    def _advance_pass(self, step: Callable[[int], None]) -> bool:
        """Apply `step` to the next word position(s) of an L-word pass.

        Positions run from 0 to `L-1`. In CYCLE mode a tick covers one position; in the
        other modes it covers the whole pass.

        Returns:
            True once the final position has been processed.
        """
        count = 1 if self.mode is MultiplierMode.CYCLE else self._n_words
        for _ in range(count):
            step(self._pos)
            self._pos += 1
        if self._pos == self._n_words:
            self._pos = 0
            return True
        return False

    # ----------------------------------------------------------------------------------
    # State handlers

    def _idle(self):
        if self._pending is None:
            return
        self._request, self._pending = self._pending, None
        n = self._n_words
        logger.debug(
            "Sampled calculate: %s * %s -> %s over %d word(s)",
            self._request.a.name,
            self._request.b.name,
            self._request.destination.name,
            n,
        )
        self.cycles = 1
        self.product = None
        self._acc = np.zeros(n, dtype=np.uint32)
        self._diff = np.zeros(n, dtype=np.uint32)
        self._top = 0
        self._pos = 0
        self.state = MultiplierState.INIT_ACCUMULATOR

    def _init_accumulator(self):
        def step(pos: int):
            self._acc[pos] = 0

        if self._advance_pass(step):
            self.state = MultiplierState.LOOP_SETUP

    def _loop_setup(self):
        n = self._n_words
        self._top = 0
        self._bit_index = 0
        self._bits_left = WORD_BITS * n
        if self.mode is MultiplierMode.WORD_PARALLEL:
            modulus = self.store.dump(Bank.MODULUS, n)
            a = self._operand_value(self._request.a)
            b = self._operand_value(self._request.b)
            s = MontgomeryUInt(n, modulus).redc(a * b)
            self._acc = int_to_words(s & ((1 << (WORD_BITS * n)) - 1), n)
            self._top = s >> (WORD_BITS * n)
            self._bits_left = 0
        self.state = MultiplierState.LOOP_ITERATE

    def _loop_iterate(self):
        n = self._n_words
        if self._bits_left == 0:
            self._carry = 0
            self._pos = 0
            self.state = MultiplierState.REDUCE
            return
        word_index = n - 1 - self._bit_index // WORD_BITS
        a_word, b_word = self._operand_words(n - 1, word_index)
        self._b = (b_word >> (self._bit_index % WORD_BITS)) & 1
        self._q = (int(self._acc[n - 1]) & 1) ^ (a_word & 1 & self._b)
        self._carry = 0
        self._pos = 0
        self.state = MultiplierState.ADD_MODULUS

    def _add_modulus(self):
        n = self._n_words

        def step(pos: int):
            if not self._q:
                return
            i = n - 1 - pos
            word = self._modulus_word(i)
            self._acc[i], self._carry = self._adder(self._acc[i], word, self._carry)

        if self._advance_pass(step):
            self._top += self._carry
            self._carry = 0
            self.state = MultiplierState.ADD_OPERAND

    def _add_operand(self):
        n = self._n_words

        def step(pos: int):
            if not self._b:
                return
            i = n - 1 - pos
            a_word = self._operand_word(self._request.a, i)
            self._acc[i], self._carry = self._adder(self._acc[i], a_word, self._carry)

        if self._advance_pass(step):
            self._top += self._carry
            # The bit entering word 0 from above.
            self._carry = self._top & 1
            self._top >>= 1
            self.state = MultiplierState.SHIFT_RIGHT

    def _shift_right(self):
        def step(pos: int):
            word = int(self._acc[pos])
            self._acc[pos] = (word >> 1) | (self._carry << (WORD_BITS - 1))
            self._carry = word & 1

        if self._advance_pass(step):
            assert self._carry == 0, "accumulator was odd before the shift"
            self._bits_left -= 1
            self._bit_index += 1
            self.state = MultiplierState.LOOP_ITERATE

    def _reduce(self):
        n = self._n_words

        def step(pos: int):
            i = n - 1 - pos
            self._diff[i], self._carry = self._subtractor(
                self._acc[i], self._modulus_word(i), self._carry
            )

        if self._advance_pass(step):
            # S - N is non-negative iff the high bits cover the final borrow.
            self._use_diff = self._top >= self._carry
            self._carry = 0
            self.state = MultiplierState.EMIT

    def _emit(self):
        out = self._diff if self._use_diff else self._acc

        def step(pos: int):
            self.store.route(self._request.destination, pos, int(out[pos]))

        if self._advance_pass(step):
            self.product = words_to_int(out)
            logger.debug(
                "Montgomery product written to %s after %d cycles",
                self._request.destination.name,
                self.cycles,
            )
            self.state = MultiplierState.DONE

    def _done(self):
        self.state = MultiplierState.IDLE


def montgomery_multiply(
    a: int,
    b: int,
    modulus: int,
    n_words: Optional[int] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> int:
    r"""Returns the Montgomery product $a \cdot b \cdot r^{-1} \mod N$ with $r = 2^{32 L}$.

    Runs a `MontgomeryMultiplier` on a fresh `BigIntegerStore` until it is ready.

    Args:
        a: The first operand, `0 <= a < modulus`.
        b: The second operand, `0 <= b < modulus`.
        modulus: An odd modulus greater than one.
        n_words: The operand length `L` in words. Defaults to the smallest length that
            holds `modulus`.
        config: The engine configuration. Defaults to `EngineConfig.fast()`.

    Raises:
        InvalidLengthError: If `n_words` is not within `1..config.max_words`.
        NonOddModulusError: If `modulus` is even.
        OperandOutOfRangeError: If an operand is not below `modulus` or `modulus` does not
            fit in `n_words` words.
    """
    if config is None:
        config = EngineConfig.fast()
    if n_words is None:
        n_words = n_words_for(modulus)
    n_words = validate_length(n_words, config.max_words)
    modulus = validate_modulus(modulus, n_words)
    a = validate_operand('a', a, modulus, n_words)
    b = validate_operand('b', b, modulus, n_words)

    store = BigIntegerStore(config.max_words)
    store.load(Bank.MODULUS, modulus, n_words)
    store.load(Bank.MESSAGE, a, n_words)
    store.load(Bank.POWER, b, n_words)
    multiplier = MontgomeryMultiplier(store, config.multiplier_mode)
    multiplier.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, n_words)
    run_until_ready(multiplier)
    return store.dump(Bank.RESULT, n_words)
