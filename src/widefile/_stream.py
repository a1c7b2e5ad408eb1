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

"""Exception-raising stream wrapper around :class:`FileBuffer`.

``FileBuffer`` reports failures through sentinels. :class:`FileStream` turns
each failure into the recorded :class:`~widefile.errors.WidefileError` so
callers can use ordinary ``try``/``except`` handling. End of file is still
reported as ``b""`` or :data:`~widefile.EOF`.
"""

from __future__ import annotations

import os
from collections.abc import Buffer, Iterator
from dataclasses import dataclass
from typing import Final, NoReturn, Self

from ._filebuf import EOF, INVALID_POSITION, FileBuffer
from .config import StreamConfig
from .errors import StreamClosedError, StreamIOError, WidefileError
from .modes import OpenMode
from .paths import StrOrBytesPath

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "FileStream",
]

#: Default chunk size for :meth:`FileStream.chunks` and iteration.
DEFAULT_CHUNK_SIZE: Final[int] = 65_536

_KEEP_BUFFER: Final = object()


@dataclass(slots=True)
class FileStream:
    """Open, buffered byte stream that raises on failure.

    Create instances with :meth:`open`; the wrapped :class:`FileBuffer` is
    available as :attr:`buffer` for sentinel-style access.
    """

    _buffer: FileBuffer

    @classmethod
    def open(
        cls,
        path: StrOrBytesPath,
        mode: OpenMode | str = "r",
        *,
        buffer: Buffer | None | object = _KEEP_BUFFER,
        config: StreamConfig | None = None,
    ) -> FileStream:
        """Open ``path`` and return a stream positioned per ``mode``.

        Args:
            path: File to open (``str``, ``bytes`` or path-like).
            mode: :class:`OpenMode` flags or an fopen-style string.
            buffer: Caller-owned buffer to borrow, or ``None`` for unbuffered
                I/O. Omit to use an owned buffer sized by ``config``.
            config: Stream defaults; resolved from the environment if omitted.

        Raises:
            OpenFailedError: If the file cannot be opened in ``mode``.
        """
        filebuf = FileBuffer(config)
        if buffer is not _KEEP_BUFFER:
            _ = filebuf.set_buffer(buffer)  # pyright: ignore[reportArgumentType]
        if not filebuf.open(path, mode):
            _raise(filebuf)
        return cls(_buffer=filebuf)

    @property
    def buffer(self) -> FileBuffer:
        """Underlying sentinel-returning buffer."""
        return self._buffer

    @property
    def path(self) -> str | None:
        return self._buffer.path

    @property
    def closed(self) -> bool:
        return self._buffer.closed

    def _check_closed(self) -> None:
        if self._buffer.closed:
            msg = "I/O operation on closed file"
            raise StreamClosedError(msg)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes; ``b""`` at end of file."""
        self._check_closed()
        data = self._buffer.read(size)
        _raise_if_failed(self._buffer)
        return data

    def readinto(self, buffer: Buffer) -> int:
        self._check_closed()
        count = self._buffer.readinto(buffer)
        _raise_if_failed(self._buffer)
        return count

    def read_byte(self) -> int:
        """Return the next byte, or :data:`EOF` at end of file."""
        self._check_closed()
        value = self._buffer.read_byte()
        if value == EOF:
            _raise_if_failed(self._buffer)
        return value

    def peek_byte(self) -> int:
        self._check_closed()
        value = self._buffer.peek_byte()
        if value == EOF:
            _raise_if_failed(self._buffer)
        return value

    def write(self, data: Buffer) -> int:
        """Write all of ``data``.

        Raises:
            StreamIOError: If only part of ``data`` could be written.
        """
        self._check_closed()
        count = self._buffer.write(data)
        _raise_if_failed(self._buffer)
        return count

    def write_byte(self, value: int) -> int:
        self._check_closed()
        result = self._buffer.write_byte(value)
        if result == EOF:
            _raise(self._buffer)
        return result

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Seek and return the new absolute position."""
        self._check_closed()
        position = self._buffer.seek(offset, whence)
        if position == INVALID_POSITION:
            _raise(self._buffer)
        return position

    def tell(self) -> int:
        self._check_closed()
        position = self._buffer.tell()
        if position == INVALID_POSITION:
            _raise(self._buffer)
        return position

    def flush(self) -> None:
        """Write pending output and realign the descriptor position."""
        self._check_closed()
        if not self._buffer.sync():
            _raise(self._buffer)

    def swap(self, other: FileStream) -> None:
        """Exchange the underlying buffers' state with ``other``."""
        self._buffer.swap(other.buffer)

    def __iter__(self) -> Iterator[bytes]:
        """Iterate over chunks of default size."""
        return self.chunks(DEFAULT_CHUNK_SIZE)

    def chunks(self, size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Iterate over chunks of at most ``size`` bytes until end of file."""
        if size < 1:
            msg = f"chunk size must be positive (got {size})"
            raise ValueError(msg)
        self._check_closed()
        while True:
            chunk = self.read(size)
            if not chunk:
                break
            yield chunk

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Flush and close; a no-op when already closed.

        Raises:
            StreamIOError: If pending output could not be written. The
                descriptor is released regardless.
        """
        if self._buffer.closed:
            return
        if not self._buffer.close():
            _raise(self._buffer)


def _raise_if_failed(filebuf: FileBuffer) -> None:
    if filebuf.last_error is not None:
        raise filebuf.last_error


def _raise(filebuf: FileBuffer) -> NoReturn:
    error: WidefileError | None = filebuf.last_error
    if error is None:
        error = StreamIOError(0, "stream operation failed without a recorded error")
    raise error
