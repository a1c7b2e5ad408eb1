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

"""Open-mode flags and their translation to native ``os.open`` flags."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Final

__all__ = [
    "AccessMode",
    "NativeMode",
    "OpenMode",
    "resolve_mode",
]


class OpenMode(Flag):
    """Classic stream open flags.

    ``IN``/``OUT`` select the access direction, ``TRUNC``/``APP`` the
    creation policy, ``ATE`` positions at the end after opening and
    ``BINARY`` disables line-ending translation where the platform has one.
    """

    IN = auto()
    OUT = auto()
    TRUNC = auto()
    APP = auto()
    ATE = auto()
    BINARY = auto()

    @classmethod
    def parse(cls, mode: OpenMode | str) -> OpenMode:
        """Return ``mode`` as flags, accepting fopen-style strings.

        ``"r"``, ``"w"``, ``"a"``, ``"r+"``, ``"w+"`` and ``"a+"`` are
        accepted with an optional ``b`` or ``t`` in any position.

        Raises:
            ValueError: If the string is not an fopen-style mode.
        """
        if isinstance(mode, OpenMode):
            return mode
        if not isinstance(mode, str):
            msg = f"mode must be an OpenMode or str, not {type(mode).__name__}"
            raise TypeError(msg)

        binary = "b" in mode
        if binary and "t" in mode:
            msg = f"Invalid mode: {mode!r}"
            raise ValueError(msg)
        base = mode.replace("b", "").replace("t", "")
        flags = _STRING_MODES.get(base)
        if flags is None or len(mode) - len(base) > 1:
            msg = f"Invalid mode: {mode!r}"
            raise ValueError(msg)
        return flags | cls.BINARY if binary else flags


_STRING_MODES: Final[dict[str, OpenMode]] = {
    "r": OpenMode.IN,
    "w": OpenMode.OUT | OpenMode.TRUNC,
    "a": OpenMode.APP,
    "r+": OpenMode.IN | OpenMode.OUT,
    "w+": OpenMode.IN | OpenMode.OUT | OpenMode.TRUNC,
    "a+": OpenMode.IN | OpenMode.APP,
}


class AccessMode(Enum):
    """Direction an open stream may transfer bytes in."""

    READ_ONLY = "r"
    WRITE_ONLY = "w"
    READ_WRITE = "rw"

    @property
    def readable(self) -> bool:
        return self is not AccessMode.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not AccessMode.READ_ONLY


@dataclass(frozen=True, slots=True)
class NativeMode:
    """Result of translating an :class:`OpenMode` for ``os.open``."""

    access: AccessMode
    flags: int
    append: bool
    at_end: bool
    binary: bool


_O_BINARY: Final[int] = getattr(os, "O_BINARY", 0)
_O_TEXT: Final[int] = getattr(os, "O_TEXT", 0)
_CREATE_TRUNC: Final[int] = os.O_CREAT | os.O_TRUNC
_CREATE_APPEND: Final[int] = os.O_CREAT | os.O_APPEND

_DIRECTION_MASK: Final[OpenMode] = (
    OpenMode.IN | OpenMode.OUT | OpenMode.TRUNC | OpenMode.APP
)

# Mirrors the C fopen mode table; anything absent is
# rejected before touching the filesystem.
_TABLE: Final[dict[OpenMode, tuple[AccessMode, int]]] = {
    OpenMode.OUT: (AccessMode.WRITE_ONLY, os.O_WRONLY | _CREATE_TRUNC),
    OpenMode.OUT | OpenMode.TRUNC: (AccessMode.WRITE_ONLY, os.O_WRONLY | _CREATE_TRUNC),
    OpenMode.APP: (AccessMode.WRITE_ONLY, os.O_WRONLY | _CREATE_APPEND),
    OpenMode.OUT | OpenMode.APP: (AccessMode.WRITE_ONLY, os.O_WRONLY | _CREATE_APPEND),
    OpenMode.IN: (AccessMode.READ_ONLY, os.O_RDONLY),
    OpenMode.IN | OpenMode.OUT: (AccessMode.READ_WRITE, os.O_RDWR),
    OpenMode.IN | OpenMode.OUT | OpenMode.TRUNC: (
        AccessMode.READ_WRITE,
        os.O_RDWR | _CREATE_TRUNC,
    ),
    OpenMode.IN | OpenMode.APP: (AccessMode.READ_WRITE, os.O_RDWR | _CREATE_APPEND),
    OpenMode.IN | OpenMode.OUT | OpenMode.APP: (
        AccessMode.READ_WRITE,
        os.O_RDWR | _CREATE_APPEND,
    ),
}


def resolve_mode(mode: OpenMode) -> NativeMode | None:
    """Translate ``mode`` to native flags, or ``None`` if unsupported."""

    entry = _TABLE.get(mode & _DIRECTION_MASK)
    if entry is None:
        return None
    access, flags = entry
    binary = OpenMode.BINARY in mode
    flags |= _O_BINARY if binary else _O_TEXT
    return NativeMode(
        access=access,
        flags=flags,
        append=bool(flags & os.O_APPEND),
        at_end=OpenMode.ATE in mode,
        binary=binary,
    )
