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
"""The word-addressed register interface of the modular exponentiation engine.

Addresses are `(prefix << 8) | offset`:

| Prefix | Bank      | Access                                                          |
|--------|-----------|-----------------------------------------------------------------|
| 0x0    | General   | 0 id, 1 version, 2 control, 3 status, 4 length                  |
| 0x1    | Modulus   | read/write                                                      |
| 0x2    | Exponent  | read/write                                                      |
| 0x3    | Message   | read/write                                                      |
| 0x4    | Result    | read only                                                       |
| 0x5    | Length    | read/write, sets the word count `L` without starting a run      |

A caller writes the length and the operand words (most significant word at offset 0),
sets the start bit of the control register, polls the status register until the ready bit
is set and reads the result words back. Bank and length accesses are rejected with
`BusyRejectedError` while a run is in progress.
"""

import logging
from enum import IntEnum
from typing import Optional, Tuple

from montexp._infra.config import EngineConfig
from montexp._infra.store import Bank
from montexp._infra.validation import BusyRejectedError
from montexp._infra.words import _assert_valid_word, int_to_words, words_to_int
from montexp._version import __version__
from montexp.engine.exponentiation_controller import ExponentiationController

logger = logging.getLogger(__name__)

DEVICE_ID = 0x4D455850
"""'MEXP' in ASCII."""

OFFSET_BITS = 8

CONTROL_START = 1 << 0
CONTROL_RESET = 1 << 1

STATUS_READY = 1 << 0
STATUS_BUSY = 1 << 1


class Prefix(IntEnum):
    GENERAL = 0x0
    MODULUS = 0x1
    EXPONENT = 0x2
    MESSAGE = 0x3
    RESULT = 0x4
    LENGTH = 0x5


class GeneralRegister(IntEnum):
    ID = 0
    VERSION = 1
    CONTROL = 2
    STATUS = 3
    LENGTH = 4


_BANKS = {
    Prefix.MODULUS: Bank.MODULUS,
    Prefix.EXPONENT: Bank.EXPONENT,
    Prefix.MESSAGE: Bank.MESSAGE,
    Prefix.RESULT: Bank.RESULT,
}


def make_address(prefix: Prefix, offset: int = 0) -> int:
    if not 0 <= offset < (1 << OFFSET_BITS):
        raise IndexError(f"Offset {offset} does not fit in {OFFSET_BITS} bits")
    return (int(prefix) << OFFSET_BITS) | offset


def _version_word() -> int:
    major, minor, patch = (int(part) for part in __version__.split('.')[:3])
    return (major << 16) | (minor << 8) | patch


class ModExpDevice:
    """Register-level model of the engine: one `ExponentiationController` behind a bus.

    Args:
        config: The engine configuration. Defaults to a cycle-accurate `EngineConfig()`.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.controller = ExponentiationController(config=config)
        self.store = self.controller.store
        self.length = 0
        self._ready = False

    @property
    def busy(self) -> bool:
        return self.controller.busy

    @property
    def status(self) -> int:
        return (STATUS_READY if self._ready else 0) | (STATUS_BUSY if self.busy else 0)

    def _decode(self, address: int) -> Tuple[Prefix, int]:
        prefix, offset = divmod(int(address), 1 << OFFSET_BITS)
        try:
            prefix = Prefix(prefix)
        except ValueError:
            raise IndexError(f"No register at address {address:#x}") from None
        if prefix in _BANKS and offset >= self.store.max_words:
            raise IndexError(f"Offset {offset} beyond the {self.store.max_words}-word banks")
        if prefix is Prefix.LENGTH and offset != 0:
            raise IndexError(f"No register at address {address:#x}")
        if prefix is Prefix.GENERAL and offset >= len(GeneralRegister):
            raise IndexError(f"No register at address {address:#x}")
        return prefix, offset

    def _guard(self, what: str):
        if self.busy:
            raise BusyRejectedError(f"Cannot {what} while a run is in progress")

    def read(self, address: int) -> int:
        prefix, offset = self._decode(address)
        if prefix is Prefix.GENERAL:
            return self._read_general(GeneralRegister(offset))
        if prefix is Prefix.LENGTH:
            return self.length
        self._guard(f"read {prefix.name}")
        return self.store.read(_BANKS[prefix], offset)

    def _read_general(self, register: GeneralRegister) -> int:
        if register is GeneralRegister.ID:
            return DEVICE_ID
        if register is GeneralRegister.VERSION:
            return _version_word()
        if register is GeneralRegister.STATUS:
            return self.status
        if register is GeneralRegister.LENGTH:
            return self.length
        return 0

    def write(self, address: int, word: int):
        prefix, offset = self._decode(address)
        _assert_valid_word(word)
        if prefix is Prefix.GENERAL:
            self._write_general(GeneralRegister(offset), word)
        elif prefix is Prefix.LENGTH:
            self._write_length(word)
        elif prefix is Prefix.RESULT:
            raise PermissionError("The result bank is read only")
        else:
            self._guard(f"write {prefix.name}")
            self.store.write(_BANKS[prefix], offset, word)

    def _write_general(self, register: GeneralRegister, word: int):
        if register is GeneralRegister.CONTROL:
            self._control(word)
        elif register is GeneralRegister.LENGTH:
            self._write_length(word)
        else:
            raise PermissionError(f"The {register.name} register is read only")

    def _write_length(self, word: int):
        self._guard("change the length")
        self.length = int(word)

    def _control(self, word: int):
        if word & CONTROL_RESET:
            self.controller.reset()
            self._ready = False
        if word & CONTROL_START:
            self.controller.start(self.length)
            self._ready = False
            logger.debug("Start accepted for %d word(s)", self.length)

    def clock(self, n: int = 1):
        """Advance the engine by `n` ticks."""
        for _ in range(n):
            self.controller.tick()
            if self.controller.ready:
                self._ready = True

    def run_until_ready(self, max_ticks: Optional[int] = None) -> int:
        """Clock the engine until the status ready bit is set; returns the ticks taken."""
        ticks = 0
        while not self._ready:
            if max_ticks is not None and ticks >= max_ticks:
                raise RuntimeError(f"Device not ready after {ticks} ticks")
            self.clock()
            ticks += 1
        return ticks

    def write_int(self, prefix: Prefix, value: int):
        """Write `value` as `self.length` words starting at offset 0 of `prefix`."""
        for offset, word in enumerate(int_to_words(value, self.length)):
            self.write(make_address(prefix, offset), int(word))

    def read_int(self, prefix: Prefix) -> int:
        """Read `self.length` words starting at offset 0 of `prefix`."""
        return words_to_int(
            [self.read(make_address(prefix, offset)) for offset in range(self.length)]
        )
