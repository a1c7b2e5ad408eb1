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

"""Buffer regions and buffer storage variants for :class:`FileBuffer`.

A stream is never simultaneously holding unread and unflushed bytes, so the
active region is a single tagged value rather than two optional ranges.
"""

from __future__ import annotations

from collections.abc import Buffer
from dataclasses import dataclass
from enum import Enum, auto
from typing import Final

__all__ = [
    "NEUTRAL",
    "UNBUFFERED",
    "Borrowed",
    "Neutral",
    "Owned",
    "Reading",
    "Region",
    "Storage",
    "StreamState",
    "Unbuffered",
    "Writing",
    "borrow",
]


class StreamState(Enum):
    """Observable state of a :class:`~widefile.FileBuffer`."""

    CLOSED = auto()
    NEUTRAL = auto()
    READING = auto()
    WRITING = auto()


@dataclass(frozen=True, slots=True)
class Neutral:
    """No bytes buffered; the native position is the logical position."""


@dataclass(slots=True)
class Reading:
    """Fetched bytes ``[0, end)`` of the read area, ``cursor`` next unread.

    The native position sits at ``base + end``.
    """

    cursor: int
    end: int

    @property
    def remaining(self) -> int:
        return self.end - self.cursor


@dataclass(slots=True)
class Writing:
    """Pending bytes ``[0, end)`` of the buffer, not yet written.

    The native position sits at ``base``.
    """

    end: int


type Region = Neutral | Reading | Writing

NEUTRAL: Final[Neutral] = Neutral()


@dataclass(frozen=True, slots=True)
class Owned:
    """Buffer allocated and owned by the stream."""

    view: memoryview

    @classmethod
    def allocate(cls, capacity: int) -> Owned:
        return cls(view=memoryview(bytearray(capacity)))

    @property
    def capacity(self) -> int:
        return len(self.view)


@dataclass(frozen=True, slots=True)
class Borrowed:
    """Caller-supplied buffer; never resized, released on close."""

    view: memoryview

    @property
    def capacity(self) -> int:
        return len(self.view)

    def release(self) -> None:
        self.view.release()


@dataclass(frozen=True, slots=True)
class Unbuffered:
    """Capacity 0: every transfer goes straight to the descriptor."""

    @property
    def capacity(self) -> int:
        return 0


type Storage = Owned | Borrowed | Unbuffered

UNBUFFERED: Final[Unbuffered] = Unbuffered()


def borrow(storage: Buffer) -> Borrowed | Unbuffered:
    """Wrap a caller buffer, or select unbuffered mode for an empty one.

    Raises:
        TypeError: If ``storage`` is read-only or not C-contiguous.
    """

    with memoryview(storage) as raw:
        if raw.readonly:
            msg = "Borrowed buffers must be writable"
            raise TypeError(msg)
        if not raw.c_contiguous:
            msg = "Borrowed buffers must be C-contiguous"
            raise TypeError(msg)
        if raw.nbytes == 0:
            return UNBUFFERED
        return Borrowed(view=raw.cast("B"))
