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
"""Engine configuration."""

from enum import Enum

import attrs

from montexp._infra.validation import InvalidLengthError, MAX_WORDS


class MultiplierMode(Enum):
    """How much work the Montgomery multiplier does per tick.

    CYCLE: one word operation per tick, matching the hardware datapath cycle for cycle.
    PASS: each L-word pass (zero, add, shift, reduce, emit) completes in one tick. The same
        states are visited in the same order.
    WORD_PARALLEL: the bit-serial loop is replaced by word-parallel integer arithmetic. The
        automaton still enters and leaves the same outer states and emits the same words.
    """

    CYCLE = 'cycle'
    PASS = 'pass'
    WORD_PARALLEL = 'word_parallel'


class ResidueMode(Enum):
    """How the residue calculator computes r^2 mod N.

    DOUBLING: one doubling-and-reduction step per tick followed by one word write per tick.
    DIRECT: computed and written in a single tick.
    """

    DOUBLING = 'doubling'
    DIRECT = 'direct'


def _validate_max_words(instance, attribute, value):
    if not 1 <= value <= MAX_WORDS:
        raise InvalidLengthError(f"{attribute.name}={value} must be within 1..{MAX_WORDS}")


@attrs.frozen
class EngineConfig:
    """Settings shared by the controller, the multiplier and the register interface.

    Args:
        max_words: Size of every bank in words. Operations longer than this are rejected.
        multiplier_mode: See `MultiplierMode`.
        residue_mode: See `ResidueMode`.
    """

    max_words: int = attrs.field(
        default=MAX_WORDS, validator=[attrs.validators.instance_of(int), _validate_max_words]
    )
    multiplier_mode: MultiplierMode = attrs.field(
        default=MultiplierMode.CYCLE,
        converter=MultiplierMode,
        validator=attrs.validators.instance_of(MultiplierMode),
    )
    residue_mode: ResidueMode = attrs.field(
        default=ResidueMode.DOUBLING,
        converter=ResidueMode,
        validator=attrs.validators.instance_of(ResidueMode),
    )

    @classmethod
    def fast(cls, max_words: int = MAX_WORDS) -> 'EngineConfig':
        """A configuration that trades cycle fidelity for speed."""
        return cls(
            max_words=max_words,
            multiplier_mode=MultiplierMode.WORD_PARALLEL,
            residue_mode=ResidueMode.DIRECT,
        )

    @property
    def cycle_accurate(self) -> bool:
        return (
            self.multiplier_mode is MultiplierMode.CYCLE
            and self.residue_mode is ResidueMode.DOUBLING
        )
