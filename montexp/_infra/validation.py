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
"""Precondition checks that run before an operation is allowed to start.

The hardware this engine models performs none of these checks and silently produces
wrong numbers instead. Here every violation surfaces as a `ModExpError`.
"""

from typing import Optional

import numpy as np

from montexp._infra.words import WORD_BITS

MAX_WORDS = 256
"""Largest supported operand length in words (8192 bits)."""


class ModExpError(Exception):
    """Base class for errors raised by the modular exponentiation engine."""


class InvalidLengthError(ModExpError, ValueError):
    """The operand length is zero or exceeds the supported maximum."""


class NonOddModulusError(ModExpError, ValueError):
    """Montgomery arithmetic requires an odd modulus."""


class BusyRejectedError(ModExpError, RuntimeError):
    """A start, bank write, or result read was requested while an operation is running."""


class OperandOutOfRangeError(ModExpError, ValueError):
    """An operand is negative, not below the modulus, or does not fit in the radix."""


def validate_length(n_words: int, max_words: int = MAX_WORDS) -> int:
    if not isinstance(n_words, (int, np.integer)) or isinstance(n_words, bool):
        raise InvalidLengthError(f"Length must be an integer number of words, not {n_words!r}")
    if n_words < 1 or n_words > max_words:
        raise InvalidLengthError(f"Length {n_words} is outside 1..{max_words} words")
    return int(n_words)


def validate_modulus(modulus: int, n_words: int) -> int:
    """Checks that `modulus` is odd, above one, and fits in `n_words` words."""
    modulus = int(modulus)
    if modulus % 2 == 0:
        raise NonOddModulusError(f"Modulus {modulus:#x} is even")
    if modulus <= 1:
        raise OperandOutOfRangeError(f"Modulus {modulus} must be greater than one")
    if modulus >> (WORD_BITS * n_words):
        raise OperandOutOfRangeError(
            f"Modulus {modulus:#x} does not fit in {n_words} word(s); it must be below the radix"
        )
    return modulus


def validate_operand(name: str, value: int, modulus: Optional[int], n_words: int) -> int:
    """Checks that `value` is non-negative and below `modulus`, or below the radix."""
    if not isinstance(value, (int, np.integer)):
        raise OperandOutOfRangeError(f"{name} should be an integer, not {value!r}")
    value = int(value)
    if value < 0:
        raise OperandOutOfRangeError(f"{name}={value} is negative")
    if value >> (WORD_BITS * n_words):
        raise OperandOutOfRangeError(f"{name}={value:#x} does not fit in {n_words} word(s)")
    if modulus is not None and value >= modulus:
        raise OperandOutOfRangeError(f"{name}={value:#x} is not below the modulus {modulus:#x}")
    return value
