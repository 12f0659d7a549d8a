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
"""Functions for testing the engine against reference arithmetic."""

from typing import Optional

import numpy as np

from montexp._infra.clock import run_until_ready
from montexp._infra.config import EngineConfig
from montexp._infra.data_types import MontgomeryUInt, n_words_for
from montexp._infra.words import WORD_BITS, words_to_int
from montexp.engine import modular_exponentiate, montgomery_multiply


def reference_montgomery_product(a: int, b: int, modulus: int, n_words: int) -> int:
    """`a * b * r^-1 mod modulus` with the inverse taken by `pow`."""
    r_inv = pow(2 ** (WORD_BITS * n_words), -1, modulus)
    return (a * b * r_inv) % modulus


def assert_montgomery_product(
    a: int,
    b: int,
    modulus: int,
    n_words: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> int:
    """Check `montgomery_multiply` against `MontgomeryUInt` and a `pow`-based reference.

    Returns:
        The computed product.
    """
    if n_words is None:
        n_words = n_words_for(modulus)
    expected = reference_montgomery_product(a, b, modulus, n_words)
    dtype_val = MontgomeryUInt(n_words, modulus).montgomery_product(a, b)
    if dtype_val != expected:
        raise AssertionError(f"MontgomeryUInt gives {dtype_val:#x}, reference {expected:#x}")
    actual = montgomery_multiply(a, b, modulus, n_words, config=config)
    if actual != expected:
        raise AssertionError(
            f"mont({a:#x}, {b:#x}) mod {modulus:#x} over {n_words} word(s): "
            f"got {actual:#x}, expected {expected:#x}"
        )
    return actual


def assert_exponentiation(
    message: int,
    exponent: int,
    modulus: int,
    n_words: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> int:
    """Check `modular_exponentiate` against Python's three-argument `pow`.

    Returns:
        The computed power.
    """
    expected = pow(message, exponent, modulus)
    actual = modular_exponentiate(message, exponent, modulus, n_words, config=config)
    if actual != expected:
        raise AssertionError(
            f"{message:#x}^{exponent:#x} mod {modulus:#x}: got {actual:#x}, expected {expected:#x}"
        )
    return actual


def random_odd_modulus(n_words: int, rng: np.random.Generator) -> int:
    """A random odd modulus using all `32 * n_words` bits."""
    words = rng.integers(0, 1 << WORD_BITS, size=n_words, dtype=np.uint64)
    top_bit = 1 << (WORD_BITS * n_words - 1)
    return words_to_int(words) | top_bit | 1


def random_operand(modulus: int, rng: np.random.Generator) -> int:
    """A random value below `modulus`."""
    n_words = n_words_for(modulus)
    words = rng.integers(0, 1 << WORD_BITS, size=n_words, dtype=np.uint64)
    return words_to_int(words) % modulus


__all__ = [
    'assert_exponentiation',
    'assert_montgomery_product',
    'random_odd_modulus',
    'random_operand',
    'reference_montgomery_product',
    'run_until_ready',
]
