# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Error types for state machine contract enforcement."""

from __future__ import annotations

from enum import Enum
from typing import Any, override

from ..errors import WidefileError


class ContractStateError(WidefileError, AssertionError):
    """Base class for state machine contract violations."""


class InvalidStateError(ContractStateError):
    """A method left its object in a state it does not declare.

    Raised by ``@transition`` and ``@enters`` when contracts are active.

    Attributes:
        cls: The class containing the method.
        method: Name of the method that was called.
        current_state: The state observed after the call.
        valid_states: The states the method declares it may leave behind.
    """

    def __init__(
        self,
        cls: type[Any],
        method: str,
        current_state: Enum,
        valid_states: tuple[Enum, ...],
    ) -> None:
        self.cls = cls
        self.method = method
        self.current_state = current_state
        self.valid_states = valid_states
        super().__init__(cls, method, current_state, valid_states)

    @override
    def __str__(self) -> str:
        valid = ", ".join(s.name for s in self.valid_states)
        return (
            f"{self.cls.__name__}.{self.method}() must leave state in "
            f"[{valid}], but current state is {self.current_state.name}"
        )


__all__ = [
    "ContractStateError",
    "InvalidStateError",
]
