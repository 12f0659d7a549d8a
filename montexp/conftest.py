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

import numpy as np
import pytest

from montexp import EngineConfig, MultiplierMode, ResidueMode

_CONFIGS = {
    'cycle': EngineConfig(multiplier_mode=MultiplierMode.CYCLE, residue_mode=ResidueMode.DOUBLING),
    'pass': EngineConfig(multiplier_mode=MultiplierMode.PASS, residue_mode=ResidueMode.DOUBLING),
    'fast': EngineConfig.fast(),
}


@pytest.fixture(params=sorted(_CONFIGS))
def engine_config(request) -> EngineConfig:
    """Every multiplier/residue mode combination worth testing."""
    return _CONFIGS[request.param]


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(seed=52)
