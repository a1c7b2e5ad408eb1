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

"""Design by contract utilities for :mod:`widefile`.

Contracts are off by default and cost one flag check per call. Set
``WIDEFILE_CONTRACTS=1`` (or call :func:`enable_contracts`) to evaluate
preconditions, postconditions, class invariants and state transitions.
A failing predicate raises :class:`AssertionError`; a wrong post-state
raises :class:`InvalidStateError`.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from functools import cache, wraps
from typing import ParamSpec, TypeVar, cast

from ._errors import ContractStateError, InvalidStateError
from ._state_machine import (
    StateMachineSpec,
    TransitionSpec,
    enters,
    extract_state_machine,
    state_machine,
    transition,
)

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T", bound=object)

type ContractResult = bool | tuple[bool, object] | None
type ContractCallable = Callable[..., ContractResult | object]

_ENV_FLAG = "WIDEFILE_CONTRACTS"
_forced_state: bool | None = None


def contracts_active() -> bool:
    """Return ``True`` when contract checks should run."""

    if _forced_state is not None:
        return _forced_state
    return _env_enabled()


@cache
def _env_enabled() -> bool:
    value = os.getenv(_ENV_FLAG)
    if value is None:
        return False
    return value.strip().lower() not in {"", "0", "false", "off", "no"}


def enable_contracts() -> None:
    """Force contract enforcement on."""

    global _forced_state
    _forced_state = True


def disable_contracts() -> None:
    """Force contract enforcement off."""

    global _forced_state
    _forced_state = False


def reset_contracts() -> None:
    """Return to the environment-controlled default.

    The environment flag is read once per process; this re-reads it.
    """

    global _forced_state
    _forced_state = None
    _env_enabled.cache_clear()


@contextmanager
def contracts_enabled(*, active: bool = True) -> Iterator[None]:
    """Temporarily set the contract flag inside a ``with`` block."""

    global _forced_state
    previous = _forced_state
    _forced_state = active
    try:
        yield
    finally:
        _forced_state = previous


def _outcome(result: ContractResult | object) -> tuple[bool, str | None]:
    if isinstance(result, tuple):
        items = cast(Sequence[object], result)
        if not items:
            msg = "Contract callables must not return empty tuples"
            raise TypeError(msg)
        detail = None if len(items) == 1 else str(items[1])
        return bool(items[0]), detail
    return bool(result), None


def _check(
    *,
    kind: str,
    func: Callable[..., object],
    predicate: ContractCallable,
    args: tuple[object, ...],
    kwargs: Mapping[str, object],
) -> None:
    name = getattr(func, "__qualname__", repr(func))
    predicate_name = getattr(predicate, "__name__", repr(predicate))
    try:
        result = predicate(*args, **kwargs)
    except AssertionError:
        raise
    except Exception as exc:
        msg = f"{kind} contract for {name} raised {type(exc).__name__}: {exc}"
        raise AssertionError(msg) from exc
    passed, detail = _outcome(result)
    if passed:
        return
    msg = f"{kind} contract for {name} failed via {predicate_name}."
    if detail:
        msg = f"{msg} Details: {detail}"
    raise AssertionError(msg)


def require(
    *predicates: ContractCallable,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate preconditions before invoking the wrapped callable."""

    if not predicates:
        msg = "@require expects at least one predicate"
        raise ValueError(msg)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            if contracts_active():
                for predicate in predicates:
                    _check(
                        kind="require",
                        func=func,
                        predicate=predicate,
                        args=tuple(args),
                        kwargs=dict(kwargs),
                    )
            return func(*args, **kwargs)

        return wrapped

    return decorator


def ensure(
    *predicates: ContractCallable,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate postconditions; predicates receive ``result=`` as a keyword."""

    if not predicates:
        msg = "@ensure expects at least one predicate"
        raise ValueError(msg)

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            result = func(*args, **kwargs)
            if contracts_active():
                for predicate in predicates:
                    _check(
                        kind="ensure",
                        func=func,
                        predicate=predicate,
                        args=tuple(args),
                        kwargs={**kwargs, "result": result},
                    )
            return result

        return wrapped

    return decorator


def _check_all(
    predicates: tuple[ContractCallable, ...],
    *,
    instance: object,
    func: Callable[..., object],
) -> None:
    for predicate in predicates:
        _check(
            kind="invariant",
            func=func,
            predicate=predicate,
            args=(instance,),
            kwargs={},
        )


def _wrap_with_invariants(
    method: Callable[..., object],
    predicates: tuple[ContractCallable, ...],
) -> Callable[..., object]:
    @wraps(method)
    def wrapper(self: object, *args: object, **kwargs: object) -> object:
        if not contracts_active():
            return method(self, *args, **kwargs)
        _check_all(predicates, instance=self, func=method)
        try:
            return method(self, *args, **kwargs)
        finally:
            _check_all(predicates, instance=self, func=method)

    return wrapper


def invariant(*predicates: ContractCallable) -> Callable[[type[T]], type[T]]:
    """Check class invariants after ``__init__`` and around public methods.

    Public means callable attributes defined on the class itself whose name
    does not start with ``_``. Properties, static and class methods are not
    wrapped.
    """

    if not predicates:
        msg = "@invariant expects at least one predicate"
        raise ValueError(msg)
    checks = tuple(predicates)

    def decorator(cls: type[T]) -> type[T]:
        original_init = cls.__init__

        @wraps(original_init)
        def init_wrapper(self: object, *args: object, **kwargs: object) -> None:
            original_init(self, *args, **kwargs)
            if contracts_active():
                _check_all(checks, instance=self, func=original_init)

        type.__setattr__(cls, "__init__", init_wrapper)

        for name, attribute in list(cls.__dict__.items()):
            if name.startswith("_") or not callable(attribute):
                continue
            if isinstance(attribute, (staticmethod, classmethod, type)):
                continue
            type.__setattr__(cls, name, _wrap_with_invariants(attribute, checks))
        return cls

    return decorator


__all__ = [
    "ContractCallable",
    "ContractResult",
    "ContractStateError",
    "InvalidStateError",
    "StateMachineSpec",
    "TransitionSpec",
    "contracts_active",
    "contracts_enabled",
    "disable_contracts",
    "enable_contracts",
    "ensure",
    "enters",
    "extract_state_machine",
    "invariant",
    "require",
    "reset_contracts",
    "state_machine",
    "transition",
]
