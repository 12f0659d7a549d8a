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
# isort:skip_file

"""The top-level montexp module.

montexp models a modular exponentiation engine, C = M^e mod N over 32- to 8192-bit
integers, as two cooperating automatons: a bit-serial Montgomery multiplier and a
square-and-multiply controller that drives it. The big-integer banks, data types and
configuration can be imported from this top-level namespace. The automatons live in
`montexp.engine` and the register-level interface in `montexp.device`.
"""

# --------------------------------------------------------------------------------------------------
# Tier 1: words, banks and configuration.
#
# Allowed external dependencies: numpy, attrs
# Allowed internal dependencies: other modules in tier 1.

from ._version import __version__

from ._infra.words import (
    WORD_BITS,
    WORD_MASK,
    WordAdder,
    add_words,
    subtract_words,
    int_to_words,
    words_to_int,
)

from ._infra.data_types import WordDType, BigUInt, MontgomeryUInt, n_words_for

from ._infra.validation import (
    MAX_WORDS,
    ModExpError,
    InvalidLengthError,
    NonOddModulusError,
    BusyRejectedError,
    OperandOutOfRangeError,
)

from ._infra.config import EngineConfig, MultiplierMode, ResidueMode

from ._infra.store import Bank, BigIntegerStore, Destination

from ._infra.clock import run_until_ready

# --------------------------------------------------------------------------------------------------
# Tier 2: the automatons.
#
# Allowed internal dependencies: tier 1.

from .engine import (
    ExponentiationController,
    MontgomeryMultiplier,
    modular_exponentiate,
    montgomery_multiply,
)
