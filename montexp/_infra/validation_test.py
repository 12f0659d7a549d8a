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

import pytest

from montexp import (
    BusyRejectedError,
    InvalidLengthError,
    MAX_WORDS,
    ModExpError,
    NonOddModulusError,
    OperandOutOfRangeError,
)
from montexp._infra.validation import validate_length, validate_modulus, validate_operand


@pytest.mark.parametrize('n_words', [1, 2, 128, MAX_WORDS])
def test_valid_lengths(n_words):
    assert validate_length(n_words) == n_words


@pytest.mark.parametrize('n_words', [0, -1, MAX_WORDS + 1, 1.0, True])
def test_invalid_lengths(n_words):
    with pytest.raises(InvalidLengthError):
        validate_length(n_words)


def test_length_limit_is_configurable():
    assert validate_length(4, max_words=4) == 4
    with pytest.raises(InvalidLengthError):
        validate_length(5, max_words=4)


def test_validate_modulus():
    assert validate_modulus(13, 1) == 13
    assert validate_modulus(2**64 - 59, 2) == 2**64 - 59
    with pytest.raises(NonOddModulusError):
        validate_modulus(14, 1)
    with pytest.raises(NonOddModulusError):
        validate_modulus(0, 1)
    with pytest.raises(OperandOutOfRangeError):
        validate_modulus(1, 1)
    with pytest.raises(OperandOutOfRangeError):
        validate_modulus(2**32 + 1, 1)


def test_validate_operand():
    assert validate_operand('m', 12, 13, 1) == 12
    assert validate_operand('e', 2**32 - 1, None, 1) == 2**32 - 1
    with pytest.raises(OperandOutOfRangeError, match='not below the modulus'):
        validate_operand('m', 13, 13, 1)
    with pytest.raises(OperandOutOfRangeError, match='negative'):
        validate_operand('m', -1, 13, 1)
    with pytest.raises(OperandOutOfRangeError, match='does not fit'):
        validate_operand('e', 2**32, None, 1)
    with pytest.raises(OperandOutOfRangeError):
        validate_operand('m', '12', 13, 1)


def test_error_hierarchy():
    for err in (InvalidLengthError, NonOddModulusError, OperandOutOfRangeError):
        assert issubclass(err, ModExpError)
        assert issubclass(err, ValueError)
    assert issubclass(BusyRejectedError, ModExpError)
    assert issubclass(BusyRejectedError, RuntimeError)
