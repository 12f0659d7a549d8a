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
"""Driving tick-based automatons."""

from typing import Optional, Protocol


class Clocked(Protocol):
    """Anything advanced one tick at a time that raises a `ready` flag when finished."""

    @property
    def ready(self) -> bool: ...

    def tick(self) -> None: ...


def run_until_ready(automaton: Clocked, max_ticks: Optional[int] = None) -> int:
    """Tick `automaton` until its `ready` flag rises.

    Args:
        automaton: The automaton to clock.
        max_ticks: Give up with a `RuntimeError` after this many ticks.

    Returns:
        The number of ticks it took.
    """
    ticks = 0
    while True:
        automaton.tick()
        ticks += 1
        if automaton.ready:
            return ticks
        if max_ticks is not None and ticks >= max_ticks:
            raise RuntimeError(f"{automaton.__class__.__name__} not ready after {ticks} ticks")
