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

"""Offset width capability.

Whether native offsets are 64-bit is a property of the runtime, not of the
code, so it is probed once per process by attempting a seek past ``2**32``
on an anonymous temporary file and cached.
"""

from __future__ import annotations

import functools
import os
import tempfile
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .logging import get_logger

if TYPE_CHECKING:
    from .config import StreamConfig

__all__ = [
    "NARROW",
    "NARROW_MAX_OFFSET",
    "PROBE_OFFSET",
    "WIDE",
    "WIDE_MAX_OFFSET",
    "OffsetModel",
    "probe",
    "reset_probe",
    "resolve_offset_model",
]

NARROW_MAX_OFFSET: Final[int] = 2**31 - 1
WIDE_MAX_OFFSET: Final[int] = 2**63 - 1

#: Offset used by the probe; needs more than 32 bits.
PROBE_OFFSET: Final[int] = 1 << 33

_logger = get_logger(__name__, context={"component": "offsets"})


@dataclass(frozen=True, slots=True)
class OffsetModel:
    """Range of file positions the native API can address."""

    wide: bool

    @property
    def max_offset(self) -> int:
        return WIDE_MAX_OFFSET if self.wide else NARROW_MAX_OFFSET

    def contains(self, position: int) -> bool:
        """Return ``True`` when ``position`` is a representable offset."""
        return 0 <= position <= self.max_offset


WIDE: Final[OffsetModel] = OffsetModel(wide=True)
NARROW: Final[OffsetModel] = OffsetModel(wide=False)


@functools.cache
def probe() -> bool:
    """Return ``True`` if the platform supports offsets wider than 32 bits."""

    with tempfile.TemporaryFile() as handle:
        try:
            reached = os.lseek(handle.fileno(), PROBE_OFFSET, os.SEEK_SET)
        except (OSError, OverflowError) as exc:
            _logger.debug(
                "wide offset probe failed",
                event="offsets.probe",
                context={"wide": False, "error": repr(exc)},
            )
            return False
    wide = reached == PROBE_OFFSET
    _logger.debug(
        "wide offset probe finished",
        event="offsets.probe",
        context={"wide": wide},
    )
    return wide


def reset_probe() -> None:
    """Forget the cached probe result."""

    probe.cache_clear()


def resolve_offset_model(config: StreamConfig) -> OffsetModel:
    """Return the offset model selected by ``config``, probing if unset."""

    wide = config.wide_offsets
    if wide is None:
        wide = probe()
    return WIDE if wide else NARROW
