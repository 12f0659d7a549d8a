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

import itertools

import pytest

from montexp import (
    Bank,
    BigIntegerStore,
    Destination,
    EngineConfig,
    InvalidLengthError,
    MultiplierMode,
    NonOddModulusError,
    OperandOutOfRangeError,
)
from montexp.cost import multiplier_cycles
from montexp.engine import (
    MontgomeryMultiplier,
    montgomery_multiply,
    MultiplierState,
    OperandSource,
)
from montexp.testing import (
    assert_montgomery_product,
    random_odd_modulus,
    random_operand,
    reference_montgomery_product,
    run_until_ready,
)


def _loaded_multiplier(a, b, modulus, n_words, mode=MultiplierMode.CYCLE):
    store = BigIntegerStore(max_words=max(n_words, 4))
    store.load(Bank.MODULUS, modulus, n_words)
    store.load(Bank.MESSAGE, a, n_words)
    store.load(Bank.POWER, b, n_words)
    return store, MontgomeryMultiplier(store, mode)


@pytest.mark.parametrize(['a', 'b'], itertools.product(range(13), repeat=2))
def test_all_products_mod_13(a, b):
    assert_montgomery_product(a, b, 13, config=EngineConfig())


def test_products_agree_across_modes(engine_config, rng):
    for n_words in (1, 2, 3):
        modulus = random_odd_modulus(n_words, rng)
        for _ in range(3):
            a, b = random_operand(modulus, rng), random_operand(modulus, rng)
            assert_montgomery_product(a, b, modulus, n_words, config=engine_config)


@pytest.mark.parametrize('modulus', [3, 2**31 - 1, 2**32 - 5, 2**32 - 1])
def test_extreme_operands_single_word(engine_config, modulus):
    for a, b in [(0, 0), (1, 1), (modulus - 1, modulus - 1), (modulus - 1, 1), (0, modulus - 1)]:
        assert_montgomery_product(a, b, modulus, 1, config=engine_config)


def test_short_modulus_in_long_operands(engine_config):
    # The radix is fixed by the length, not by the size of the modulus.
    assert_montgomery_product(5, 9, 13, 3, config=engine_config)


def test_one_times_residue_is_the_radix():
    for modulus in (13, 187, 2**32 - 5):
        r2 = pow(2, 64, modulus)
        assert montgomery_multiply(1, r2, modulus) == pow(2, 32, modulus)


def test_state_sequence_single_word():
    store, mult = _loaded_multiplier(5, 7, 13, 1)
    assert mult.state is MultiplierState.IDLE
    mult.tick()
    assert mult.state is MultiplierState.IDLE, "nothing happens without calculate"

    assert mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, 1)
    states = []
    while mult.state is not MultiplierState.IDLE or not states:
        mult.tick()
        states.append(mult.state)

    expected = [
        MultiplierState.INIT_ACCUMULATOR,
        MultiplierState.LOOP_SETUP,
        MultiplierState.LOOP_ITERATE,
    ]
    expected += [
        MultiplierState.ADD_MODULUS,
        MultiplierState.ADD_OPERAND,
        MultiplierState.SHIFT_RIGHT,
        MultiplierState.LOOP_ITERATE,
    ] * 32
    expected += [
        MultiplierState.REDUCE,
        MultiplierState.EMIT,
        MultiplierState.DONE,
        MultiplierState.IDLE,
    ]
    assert states == expected
    assert store.dump(Bank.RESULT, 1) == reference_montgomery_product(5, 7, 13, 1)


@pytest.mark.parametrize('mode', list(MultiplierMode))
@pytest.mark.parametrize('n_words', [1, 2, 3])
def test_cycles_match_cost_model(mode, n_words):
    modulus = 2 ** (32 * n_words) - 3 if n_words > 1 else 2**32 - 5
    a, b = modulus - 2, modulus // 3
    store, mult = _loaded_multiplier(a, b, modulus, n_words, mode)
    mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, n_words)
    ticks = run_until_ready(mult)
    assert ticks == mult.cycles == multiplier_cycles(n_words, mode)
    assert mult.product == store.dump(Bank.RESULT, n_words)
    assert mult.product == reference_montgomery_product(a, b, modulus, n_words)


def test_ready_for_one_tick():
    _, mult = _loaded_multiplier(3, 4, 13, 1, MultiplierMode.PASS)
    mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, 1)
    run_until_ready(mult)
    assert mult.ready and not mult.busy
    mult.tick()
    assert not mult.ready
    assert mult.state is MultiplierState.IDLE


def test_calculate_while_busy_is_ignored():
    store, mult = _loaded_multiplier(3, 4, 13, 1)
    assert mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, 1)
    assert not mult.calculate(OperandSource.ONE, OperandSource.ONE, Destination.POWER, 1)
    mult.tick()
    assert mult.busy
    assert not mult.calculate(OperandSource.ONE, OperandSource.ONE, Destination.POWER, 1)
    run_until_ready(mult)
    assert store.dump(Bank.RESULT, 1) == reference_montgomery_product(3, 4, 13, 1)
    assert store.dump(Bank.POWER, 1) == 4


def test_reset_discards_product():
    store, mult = _loaded_multiplier(3, 4, 13, 1)
    mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, 1)
    for _ in range(20):
        mult.tick()
    assert mult.busy
    mult.reset()
    assert mult.state is MultiplierState.IDLE
    assert mult.product is None
    assert store.dump(Bank.RESULT, 1) == 0

    mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.RESULT, 1)
    run_until_ready(mult)
    assert store.dump(Bank.RESULT, 1) == reference_montgomery_product(3, 4, 13, 1)


def test_destination_nowhere_writes_nothing():
    store, mult = _loaded_multiplier(3, 4, 13, 1, MultiplierMode.PASS)
    mult.calculate(OperandSource.MESSAGE, OperandSource.POWER, Destination.NOWHERE, 1)
    run_until_ready(mult)
    assert mult.product == reference_montgomery_product(3, 4, 13, 1)
    assert store.dump(Bank.RESULT, 1) == 0
    assert store.dump(Bank.POWER, 1) == 4


def test_squaring_reads_both_operands_from_one_bank(engine_config):
    modulus = 2**61 - 1
    operand = 0x123456789ABCDEF
    store, mult = _loaded_multiplier(0, operand, modulus, 2, engine_config.multiplier_mode)
    mult.calculate(OperandSource.POWER, OperandSource.POWER, Destination.POWER, 2)
    run_until_ready(mult)
    expected = reference_montgomery_product(operand, operand, modulus, 2)
    assert store.dump(Bank.POWER, 2) == expected


def test_montgomery_multiply_validation():
    with pytest.raises(InvalidLengthError):
        montgomery_multiply(1, 2, 13, 0)
    with pytest.raises(InvalidLengthError):
        montgomery_multiply(1, 2, 13, 5, config=EngineConfig.fast(max_words=4))
    with pytest.raises(NonOddModulusError):
        montgomery_multiply(1, 2, 14)
    with pytest.raises(OperandOutOfRangeError):
        montgomery_multiply(13, 2, 13)
    with pytest.raises(OperandOutOfRangeError):
        montgomery_multiply(1, -2, 13)
    with pytest.raises(OperandOutOfRangeError):
        montgomery_multiply(1, 2, 2**32 + 1, 1)


def test_largest_length_fast(rng):
    modulus = random_odd_modulus(256, rng)
    a, b = random_operand(modulus, rng), random_operand(modulus, rng)
    assert_montgomery_product(a, b, modulus, 256)


@pytest.mark.slow
def test_largest_length_cycle_accurate(rng):
    modulus = random_odd_modulus(256, rng)
    a, b = random_operand(modulus, rng), random_operand(modulus, rng)
    assert_montgomery_product(a, b, modulus, 256, config=EngineConfig())
