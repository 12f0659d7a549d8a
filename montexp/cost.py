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
"""Symbolic tick counts of the engine.

Every function accepts concrete integers or sympy expressions for the operand length and
exponent weight. Concrete inputs give exact integers that match the simulated tick counts;
symbolic inputs give polynomials: `multiplier_cycles(sympy.Symbol("L"))` is
`96*L**2 + 35*L + 3`.
"""

from typing import Optional, Union

import sympy

from montexp._infra.config import EngineConfig, MultiplierMode, ResidueMode
from montexp._infra.words import WORD_BITS
from montexp.symbolics import is_symbolic, SymbolicInt


def _simplify(x: SymbolicInt) -> SymbolicInt:
    if is_symbolic(x):
        return sympy.expand(x)
    return int(x)


def pass_length(n_words: SymbolicInt, mode: Union[MultiplierMode, str]) -> SymbolicInt:
    """Ticks taken by one L-word pass of the multiplier."""
    if MultiplierMode(mode) is MultiplierMode.CYCLE:
        return n_words
    return 1


def multiplier_cycles(
    n_words: SymbolicInt, mode: Union[MultiplierMode, str] = MultiplierMode.CYCLE
) -> SymbolicInt:
    """Ticks from the tick that samples `calculate` up to and including the one raising `ready`.

    One tick samples the request, then come the init pass, one setup tick, `32 L` bit
    iterations of one test tick plus three passes, the final test tick, the reduce pass
    and the emit pass.
    """
    if MultiplierMode(mode) is MultiplierMode.WORD_PARALLEL:
        return 6
    p = pass_length(n_words, mode)
    return _simplify(3 + 3 * p + WORD_BITS * n_words * (1 + 3 * p))


def residue_cycles(
    n_words: SymbolicInt, mode: Union[ResidueMode, str] = ResidueMode.DOUBLING
) -> SymbolicInt:
    """Ticks the residue calculator is active for."""
    if ResidueMode(mode) is ResidueMode.DIRECT:
        return 1
    return _simplify((2 * WORD_BITS + 1) * n_words)


def exponentiation_multiplications(
    n_words: SymbolicInt, exponent_weight: SymbolicInt
) -> SymbolicInt:
    """Montgomery products in one run: Z0, P0, ZN, one square per bit, one per set bit."""
    return _simplify(3 + WORD_BITS * n_words + exponent_weight)


def exponentiation_cycles(
    n_words: SymbolicInt, exponent_weight: SymbolicInt, config: Optional[EngineConfig] = None
) -> SymbolicInt:
    """Controller ticks from the tick that samples `start` up to and including `ready`.

    A product issued while the previous one is still in DONE takes one extra tick for the
    multiplier to return to IDLE. That happens for P0 and for every square that follows a
    multiply.

    Args:
        n_words: The operand length `L`.
        exponent_weight: The number of set bits in the exponent.
        config: The engine configuration. Defaults to a cycle-accurate `EngineConfig()`.
    """
    if config is None:
        config = EngineConfig()
    t_mul = multiplier_cycles(n_words, config.multiplier_mode)
    t_res = residue_cycles(n_words, config.residue_mode)
    return _simplify(
        3
        + t_res
        + 3 * t_mul
        + WORD_BITS * n_words * (1 + t_mul)
        + exponent_weight * (t_mul + 1)
    )


def hamming_weight(x: int) -> int:
    return bin(int(x)).count('1')
