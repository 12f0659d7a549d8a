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

from montexp import Bank, BigIntegerStore, ResidueMode
from montexp.cost import residue_cycles
from montexp.engine import (
    DirectResidueCalculator,
    DoublingResidueCalculator,
    make_residue_calculator,
)
from montexp.testing import random_odd_modulus, run_until_ready


@pytest.mark.parametrize('mode', list(ResidueMode))
@pytest.mark.parametrize('n_words', [1, 2, 5])
def test_residue_is_r_squared(mode, n_words, rng):
    store = BigIntegerStore(max_words=8)
    modulus = random_odd_modulus(n_words, rng)
    store.load(Bank.MODULUS, modulus, n_words)
    calc = make_residue_calculator(store, mode)
    assert not calc.ready

    calc.start(n_words)
    assert calc.busy
    ticks = run_until_ready(calc)

    expected = pow(2, 64 * n_words, modulus)
    assert calc.result == expected
    assert store.dump(Bank.RESIDUE, n_words) == expected
    assert ticks == calc.cycles == residue_cycles(n_words, mode)


def test_factory():
    store = BigIntegerStore(max_words=1)
    assert isinstance(make_residue_calculator(store), DoublingResidueCalculator)
    assert isinstance(make_residue_calculator(store, 'direct'), DirectResidueCalculator)


def test_small_modulus():
    store = BigIntegerStore(max_words=1)
    store.load(Bank.MODULUS, 3, 1)
    calc = DoublingResidueCalculator(store)
    calc.start(1)
    run_until_ready(calc)
    assert calc.result == 1  # 2**64 = (-1)**64 mod 3


def test_idle_calculator_ignores_ticks():
    store = BigIntegerStore(max_words=1)
    store.load(Bank.MODULUS, 13, 1)
    calc = DoublingResidueCalculator(store)
    for _ in range(10):
        calc.tick()
    assert calc.cycles == 0
    assert store.dump(Bank.RESIDUE, 1) == 0


def test_reset_and_restart():
    store = BigIntegerStore(max_words=1)
    store.load(Bank.MODULUS, 13, 1)
    calc = DoublingResidueCalculator(store)
    calc.start(1)
    for _ in range(5):
        calc.tick()
    calc.reset()
    assert not calc.busy and not calc.ready

    store.load(Bank.MODULUS, 187, 1)
    calc.start(1)
    run_until_ready(calc)
    assert calc.result == pow(2, 64, 187)
