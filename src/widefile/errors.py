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

"""Base exception hierarchy for :mod:`widefile`.

:class:`~widefile.FileBuffer` never raises these for I/O conditions. It
returns a sentinel and records the matching exception instance in
``FileBuffer.last_error``. :class:`~widefile.FileStream` raises that
instance instead, so both styles share one vocabulary.
"""

from __future__ import annotations

import io

__all__ = [
    "AlreadyOpenError",
    "ConfigError",
    "InvalidTransitionError",
    "ModeError",
    "OpenFailedError",
    "SeekOutOfRangeError",
    "StreamClosedError",
    "StreamIOError",
    "WidefileError",
]


class WidefileError(Exception):
    """Base class for all widefile exceptions.

    Subclasses also inherit from a builtin exception type so callers that
    already handle ``OSError`` or ``ValueError`` around file code keep
    working.

    Example:
        Catch any widefile-specific error::

            try:
                stream.write(payload)
            except WidefileError as e:
                logger.error("Stream failure: %s", e)
    """


class AlreadyOpenError(WidefileError, RuntimeError):
    """Raised when ``open`` is called on a stream that is already open.

    The existing descriptor, buffer contents and position are untouched and
    no new file is created.
    """


class OpenFailedError(WidefileError, OSError):
    """Raised when a path cannot be opened.

    Covers unsupported mode combinations, path conversion failures and native
    ``os.open`` errors. The native error, when there is one, is available as
    ``__cause__``; ``errno`` and ``filename`` are copied from it.

    Example::

        try:
            stream = FileStream.open("missing.bin")
        except OpenFailedError as e:
            if e.errno == errno.ENOENT:
                ...
    """


class StreamClosedError(WidefileError, ValueError):
    """Raised when an I/O operation is attempted on a closed stream."""


class ModeError(WidefileError, io.UnsupportedOperation):
    """Raised when the access mode forbids the operation.

    Reading a write-only stream or writing a read-only stream.
    """


class SeekOutOfRangeError(WidefileError, ValueError):
    """Raised when a seek target cannot be represented.

    Negative targets and targets beyond the platform's offset width (for
    example anything past ``2**31 - 1`` on a narrow-offset platform) are
    rejected before the stream state is touched, so the position stays at
    its last known-good value.
    """

    def __init__(self, target: int, max_offset: int) -> None:
        self.target = target
        self.max_offset = max_offset
        super().__init__(
            f"Seek target {target} outside representable range [0, {max_offset}]"
        )


class StreamIOError(WidefileError, OSError):
    """Raised when a native read, write or seek fails mid-operation.

    The stream is left in its safest recoverable state: pending bytes that
    could not be written are discarded only by ``close``, which still
    releases the descriptor.
    """


class InvalidTransitionError(WidefileError, RuntimeError):
    """Raised when buffer configuration cannot change safely.

    ``set_buffer`` syncs pending data first; this error means that sync
    failed and the previous buffer is still installed.
    """


class ConfigError(WidefileError, ValueError):
    """Raised when a :class:`~widefile.config.StreamConfig` source is invalid."""
