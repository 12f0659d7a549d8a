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

import attrs
import pytest

from montexp import EngineConfig, InvalidLengthError, MAX_WORDS, MultiplierMode, ResidueMode


def test_default_config_is_cycle_accurate():
    config = EngineConfig()
    assert config.max_words == MAX_WORDS
    assert config.multiplier_mode is MultiplierMode.CYCLE
    assert config.residue_mode is ResidueMode.DOUBLING
    assert config.cycle_accurate


def test_fast_config():
    config = EngineConfig.fast(max_words=8)
    assert config.max_words == 8
    assert config.multiplier_mode is MultiplierMode.WORD_PARALLEL
    assert config.residue_mode is ResidueMode.DIRECT
    assert not config.cycle_accurate


def test_modes_from_strings():
    config = EngineConfig(multiplier_mode='pass', residue_mode='direct')
    assert config.multiplier_mode is MultiplierMode.PASS
    assert config.residue_mode is ResidueMode.DIRECT
    with pytest.raises(ValueError):
        EngineConfig(multiplier_mode='quantum')


@pytest.mark.parametrize('max_words', [0, MAX_WORDS + 1])
def test_max_words_bounds(max_words):
    with pytest.raises(InvalidLengthError):
        EngineConfig(max_words=max_words)


def test_config_is_immutable():
    config = EngineConfig()
    with pytest.raises(attrs.exceptions.FrozenInstanceError):
        config.max_words = 4  # type: ignore[misc]
    assert attrs.evolve(config, max_words=4).max_words == 4
