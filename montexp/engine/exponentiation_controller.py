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
"""Square-and-multiply modular exponentiation driving the Montgomery multiplier."""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

from montexp._infra.clock import run_until_ready
from montexp._infra.config import EngineConfig
from montexp._infra.data_types import n_words_for
from montexp._infra.store import Bank, BigIntegerStore, Destination
from montexp._infra.validation import (
    BusyRejectedError,
    validate_length,
    validate_modulus,
    validate_operand,
)
from montexp._infra.words import WORD_BITS
from montexp.engine.montgomery_multiplier import MontgomeryMultiplier, OperandSource
from montexp.engine.residue import make_residue_calculator

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    IDLE = 'idle'
    RESIDUE_SETUP = 'residue_setup'
    COMPUTE_Z0 = 'compute_z0'
    COMPUTE_P0 = 'compute_p0'
    ITERATE = 'iterate'
    ITERATE_MULTIPLY = 'iterate_multiply'
    ITERATE_SQUARE = 'iterate_square'
    COMPUTE_ZN = 'compute_zn'
    DONE = 'done'


class ExponentiationController:
    r"""Computes $M^e \mod N$ with the right-to-left binary method in Montgomery form.

    The controller owns the multiplier's operand and destination selection. One run goes
    through the following stages, each a controller state:

     - RESIDUE_SETUP: the residue calculator writes $r^2 \mod N$ into the RESIDUE bank.
     - COMPUTE_Z0: $Z \leftarrow \mathrm{mont}(1, r^2)$, the Montgomery form of one.
     - COMPUTE_P0: $P \leftarrow \mathrm{mont}(M, r^2)$, the Montgomery form of the message.
     - ITERATE: for each exponent bit $e_i$, $i = 32L - 1 - \mathrm{counter}$, from the least
       significant up: ITERATE_MULTIPLY ($Z \leftarrow \mathrm{mont}(Z, P)$) when $e_i = 1$,
       then ITERATE_SQUARE ($P \leftarrow \mathrm{mont}(P, P)$).
     - COMPUTE_ZN: $Z \leftarrow \mathrm{mont}(1, Z)$ converts the result back to normal form.
     - DONE: `ready` is raised for one tick and the controller returns to IDLE.

    `Z` lives in the RESULT bank and `P` in the POWER bank. Every tick clocks the multiplier
    and the residue calculator before the controller itself, so a stage sees its
    sub-automaton's `ready` flag on the tick it rises.

    Args:
        store: The banks holding the operands. A new store is created if not given.
        config: The engine configuration. Defaults to a cycle-accurate `EngineConfig()`.
    """

    def __init__(
        self, store: Optional[BigIntegerStore] = None, config: Optional[EngineConfig] = None
    ):
        if config is None:
            config = EngineConfig()
        if store is None:
            store = BigIntegerStore(config.max_words)
        if store.max_words < config.max_words:
            raise ValueError(
                f"Store holds {store.max_words} words per bank, config needs {config.max_words}"
            )
        self.config = config
        self.store = store
        self.multiplier = MontgomeryMultiplier(store, config.multiplier_mode)
        self.residue = make_residue_calculator(store, config.residue_mode)
        self.state = ControllerState.IDLE
        self.n_words = 0
        self.cycles = 0
        self.multiplications = 0
        self._start_pending = False
        self._counter = 0
        self._handlers: Dict[ControllerState, Callable[[], None]] = {
            ControllerState.IDLE: self._idle,
            ControllerState.RESIDUE_SETUP: self._residue_setup,
            ControllerState.COMPUTE_Z0: self._compute_z0,
            ControllerState.COMPUTE_P0: self._compute_p0,
            ControllerState.ITERATE: self._iterate,
            ControllerState.ITERATE_MULTIPLY: self._iterate_multiply,
            ControllerState.ITERATE_SQUARE: self._iterate_square,
            ControllerState.COMPUTE_ZN: self._compute_zn,
            ControllerState.DONE: self._done,
        }

    @property
    def busy(self) -> bool:
        return self._start_pending or self.state not in (
            ControllerState.IDLE,
            ControllerState.DONE,
        )

    @property
    def ready(self) -> bool:
        return self.state is ControllerState.DONE

    @property
    def result(self) -> int:
        """The value in the first `n_words` words of the RESULT bank."""
        return self.store.dump(Bank.RESULT, self.n_words)

    def start(self, n_words: int):
        """Request a run over `n_words` words; sampled on the next tick in IDLE.

        The modulus, exponent and message must already be in their banks.

        Raises:
            BusyRejectedError: If a run is pending or in progress.
            InvalidLengthError: If `n_words` is not within `1..config.max_words`.
            NonOddModulusError: If the modulus is even.
            OperandOutOfRangeError: If the modulus is not above one or the message is not
                below the modulus.
        """
        if self.busy:
            raise BusyRejectedError(f"Cannot start while {self.state.name}")
        n_words = validate_length(n_words, self.config.max_words)
        modulus = validate_modulus(self.store.dump(Bank.MODULUS, n_words), n_words)
        validate_operand('message', self.store.dump(Bank.MESSAGE, n_words), modulus, n_words)
        self.n_words = n_words
        self._start_pending = True

    def reset(self):
        """Return both automatons to IDLE, discarding any run in progress."""
        if self.busy:
            logger.info("Reset discards run in %s after %d cycles", self.state.name, self.cycles)
        self.state = ControllerState.IDLE
        self._start_pending = False
        self.multiplier.reset()
        self.residue.reset()

    def tick(self):
        self.multiplier.tick()
        self.residue.tick()
        if self.state not in (ControllerState.IDLE, ControllerState.DONE):
            self.cycles += 1
        self._handlers[self.state]()

    def _goto(self, state: ControllerState):
        logger.debug("%s -> %s at cycle %d", self.state.name, state.name, self.cycles)
        self.state = state

    def _multiply(self, a: OperandSource, b: OperandSource, destination: Destination):
        accepted = self.multiplier.calculate(a, b, destination, self.n_words)
        assert accepted, "multiplier was busy when the controller issued a product"
        self.multiplications += 1

    # ----------------------------------------------------------------------------------
    # State handlers

    def _idle(self):
        if not self._start_pending:
            return
        self._start_pending = False
        self.cycles = 1
        self.multiplications = 0
        logger.info("Starting %d-bit modular exponentiation", WORD_BITS * self.n_words)
        self.residue.start(self.n_words)
        self._goto(ControllerState.RESIDUE_SETUP)

    def _residue_setup(self):
        if not self.residue.ready:
            return
        self._multiply(OperandSource.ONE, OperandSource.RESIDUE, Destination.RESULT)
        self._goto(ControllerState.COMPUTE_Z0)

    def _compute_z0(self):
        if not self.multiplier.ready:
            return
        self._multiply(OperandSource.MESSAGE, OperandSource.RESIDUE, Destination.POWER)
        self._goto(ControllerState.COMPUTE_P0)

    def _compute_p0(self):
        if not self.multiplier.ready:
            return
        self._counter = WORD_BITS * self.n_words
        self._goto(ControllerState.ITERATE)

    def _exponent_bit(self, i: int) -> int:
        word = self.store.read(Bank.EXPONENT, self.n_words - 1 - i // WORD_BITS)
        return (word >> (i % WORD_BITS)) & 1

    def _iterate(self):
        if self._counter == 0:
            self._multiply(OperandSource.ONE, OperandSource.ACCUMULATOR, Destination.RESULT)
            self._goto(ControllerState.COMPUTE_ZN)
            return
        self._counter -= 1
        i = WORD_BITS * self.n_words - 1 - self._counter
        if self._exponent_bit(i):
            self._multiply(OperandSource.ACCUMULATOR, OperandSource.POWER, Destination.RESULT)
            self._goto(ControllerState.ITERATE_MULTIPLY)
        else:
            self._multiply(OperandSource.POWER, OperandSource.POWER, Destination.POWER)
            self._goto(ControllerState.ITERATE_SQUARE)

    def _iterate_multiply(self):
        if not self.multiplier.ready:
            return
        self._multiply(OperandSource.POWER, OperandSource.POWER, Destination.POWER)
        self._goto(ControllerState.ITERATE_SQUARE)

    def _iterate_square(self):
        if not self.multiplier.ready:
            return
        self._goto(ControllerState.ITERATE)

    def _compute_zn(self):
        if not self.multiplier.ready:
            return
        logger.info(
            "Modular exponentiation finished after %d cycles and %d products",
            self.cycles,
            self.multiplications,
        )
        self._goto(ControllerState.DONE)

    def _done(self):
        self._goto(ControllerState.IDLE)


def modular_exponentiate(
    message: int,
    exponent: int,
    modulus: int,
    n_words: Optional[int] = None,
    *,
    config: Optional[EngineConfig] = None,
) -> int:
    r"""Returns $M^e \mod N$ computed by an `ExponentiationController`.

    Args:
        message: The base `M`, `0 <= M < modulus`.
        exponent: The exponent `e`, `0 <= e < 2^(32 L)`.
        modulus: An odd modulus greater than one.
        n_words: The operand length `L` in words. Defaults to the smallest length that
            holds both `modulus` and `exponent`.
        config: The engine configuration. Defaults to `EngineConfig.fast()`.

    Raises:
        InvalidLengthError: If `n_words` is not within `1..config.max_words`.
        NonOddModulusError: If `modulus` is even.
        OperandOutOfRangeError: If `message` is not below `modulus`, or `modulus` or
            `exponent` do not fit in `n_words` words.
    """
    if config is None:
        config = EngineConfig.fast()
    if n_words is None:
        n_words = max(n_words_for(modulus), n_words_for(max(int(exponent), 0)))
    n_words = validate_length(n_words, config.max_words)
    modulus = validate_modulus(modulus, n_words)
    message = validate_operand('message', message, modulus, n_words)
    exponent = validate_operand('exponent', exponent, None, n_words)

    controller = ExponentiationController(config=config)
    controller.store.load(Bank.MODULUS, modulus, n_words)
    controller.store.load(Bank.EXPONENT, exponent, n_words)
    controller.store.load(Bank.MESSAGE, message, n_words)
    controller.start(n_words)
    run_until_ready(controller)
    return controller.result
