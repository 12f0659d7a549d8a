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

"""The two cooperating automatons: Montgomery multiplication and exponentiation."""

from montexp.engine.exponentiation_controller import (
    ControllerState,
    ExponentiationController,
    modular_exponentiate,
)
from montexp.engine.montgomery_multiplier import (
    MontgomeryMultiplier,
    montgomery_multiply,
    MultiplierState,
    MultiplyRequest,
    OperandSource,
)
from montexp.engine.residue import (
    DirectResidueCalculator,
    DoublingResidueCalculator,
    make_residue_calculator,
    ResidueCalculator,
)
