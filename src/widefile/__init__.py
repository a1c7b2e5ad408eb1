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

"""Portable buffered file streams with Unicode paths and 64-bit offsets."""

from __future__ import annotations

from ._filebuf import EOF, INVALID_POSITION, FileBuffer
from ._regions import StreamState
from ._stream import DEFAULT_CHUNK_SIZE, FileStream
from .config import StreamConfig, default_config, load_config
from .errors import (
    AlreadyOpenError,
    ConfigError,
    InvalidTransitionError,
    ModeError,
    OpenFailedError,
    SeekOutOfRangeError,
    StreamClosedError,
    StreamIOError,
    WidefileError,
)
from .modes import AccessMode, OpenMode
from .offsets import OffsetModel
from .paths import narrow, native_path, widen

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "EOF",
    "INVALID_POSITION",
    "AccessMode",
    "AlreadyOpenError",
    "ConfigError",
    "FileBuffer",
    "FileStream",
    "InvalidTransitionError",
    "ModeError",
    "OffsetModel",
    "OpenFailedError",
    "OpenMode",
    "SeekOutOfRangeError",
    "StreamClosedError",
    "StreamConfig",
    "StreamIOError",
    "StreamState",
    "WidefileError",
    "default_config",
    "load_config",
    "narrow",
    "native_path",
    "widen",
]
