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

"""State machine declarations over derived state.

The decorated class exposes its current state through an attribute (usually
a property computed from the object's data). Methods declare which states
they may leave behind; when contracts are active the declaration is checked
after every call. Declarations also export as a Mermaid diagram.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from ._errors import InvalidStateError

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")

_SPEC_ATTR = "__state_machine_spec__"
_TRANSITION_ATTR = "__transition_spec__"


@dataclass(frozen=True, slots=True)
class TransitionSpec:
    """Declared outcome of one method."""

    method_name: str
    to_states: frozenset[Enum]
    conditional: bool = False


@dataclass(frozen=True, slots=True)
class StateMachineSpec:
    """State machine extracted from a decorated class."""

    cls: type[Any]
    state_attr: str
    states: type[Enum]
    initial: Enum
    transitions: tuple[TransitionSpec, ...] = field(default_factory=tuple)

    def to_mermaid(self) -> str:
        """Export as a Mermaid state diagram.

        A method may be called from any state, so every state gets an edge
        to each declared target. Self loops are omitted.
        """
        lines = ["stateDiagram-v2", f"    [*] --> {self.initial.name}"]
        for spec in sorted(self.transitions, key=lambda t: t.method_name):
            label = f"{spec.method_name}()"
            if spec.conditional:
                label = f"{label} [ok]"
            for target in sorted(spec.to_states, key=lambda s: s.name):
                lines.extend(
                    f"    {source.name} --> {target.name}: {label}"
                    for source in self.states
                    if source is not target
                )
        return "\n".join(lines)


def _contracts_active() -> bool:
    from . import contracts_active

    return contracts_active()


def _verify(self: object, method_name: str, to_states: frozenset[Enum]) -> None:
    cls = type(self)
    spec: StateMachineSpec = getattr(cls, _SPEC_ATTR)
    current = getattr(self, spec.state_attr)
    if current not in to_states:
        ordered = tuple(sorted(to_states, key=lambda s: s.name))
        raise InvalidStateError(cls, method_name, current, ordered)


def state_machine[StateT: Enum](
    *,
    state_attr: str,
    states: type[StateT],
    initial: StateT,
) -> Callable[[type[T]], type[T]]:
    """Class decorator registering a derived-state machine.

    Args:
        state_attr: Attribute (typically a property) returning the state.
        states: Enum class of valid states.
        initial: State every instance must be in after ``__init__``.
    """

    if initial not in states:
        msg = f"Initial state {initial} not in states enum {states.__name__}"
        raise ValueError(msg)

    def decorator(cls: type[T]) -> type[T]:
        transitions = [
            spec
            for name in dir(cls)
            if (spec := getattr(getattr(cls, name, None), _TRANSITION_ATTR, None))
            is not None
        ]
        setattr(
            cls,
            _SPEC_ATTR,
            StateMachineSpec(
                cls=cls,
                state_attr=state_attr,
                states=states,
                initial=initial,
                transitions=tuple(transitions),
            ),
        )

        original_init = cls.__init__

        @wraps(original_init)
        def init_wrapper(self: T, *args: object, **kwargs: object) -> None:
            original_init(self, *args, **kwargs)
            if _contracts_active():
                _verify(self, "__init__", frozenset((initial,)))

        type.__setattr__(cls, "__init__", init_wrapper)
        return cls

    return decorator


def transition(
    *,
    to: Enum | tuple[Enum, ...],
    when: Callable[[Any], object] | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Declare the states a method may leave behind.

    Args:
        to: Target state(s).
        when: Optional predicate over the return value; the target is only
            enforced when it returns truthy (e.g. ``bool`` for methods that
            report failure with ``False``).
    """

    to_states = frozenset((to,) if isinstance(to, Enum) else to)

    def decorator(method: Callable[P, R]) -> Callable[P, R]:
        method_name = getattr(method, "__name__", repr(method))

        @wraps(method)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            result = method(*args, **kwargs)
            if _contracts_active() and (when is None or when(result)):
                _verify(args[0], method_name, to_states)
            return result

        setattr(
            wrapper,
            _TRANSITION_ATTR,
            TransitionSpec(
                method_name=method_name,
                to_states=to_states,
                conditional=when is not None,
            ),
        )
        return wrapper

    return decorator


def enters(target_state: Enum) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Declare that a method always ends in ``target_state``, even on failure."""

    def decorator(method: Callable[P, R]) -> Callable[P, R]:
        method_name = getattr(method, "__name__", repr(method))
        targets = frozenset((target_state,))

        @wraps(method)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return method(*args, **kwargs)
            finally:
                if _contracts_active():
                    _verify(args[0], method_name, targets)

        setattr(
            wrapper,
            _TRANSITION_ATTR,
            TransitionSpec(method_name=method_name, to_states=targets),
        )
        return wrapper

    return decorator


def extract_state_machine(cls: type[Any]) -> StateMachineSpec:
    """Return the :class:`StateMachineSpec` of a decorated class.

    Raises:
        AttributeError: If ``cls`` is not decorated with ``@state_machine``.
    """

    return getattr(cls, _SPEC_ATTR)


__all__ = [
    "StateMachineSpec",
    "TransitionSpec",
    "enters",
    "extract_state_machine",
    "state_machine",
    "transition",
]
