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

"""Buffered, seekable byte stream over a single native file descriptor.

:class:`FileBuffer` follows classic stream-buffer semantics. It keeps one
buffer that is either holding read-ahead (``Reading``) or unflushed output
(``Writing``), never both, and reconciles the native descriptor position
with the logical position whenever the direction changes:

* write after read rewinds the descriptor over the unread read-ahead;
* read after write flushes pending bytes first;
* ``seek`` flushes, drops read-ahead and repositions; ``seek(0, SEEK_CUR)``
  is a pure query that keeps the buffer.

Failures never raise. Each operation returns a sentinel (:data:`EOF`,
:data:`INVALID_POSITION`, ``False``, a short count) and stores the reason
in :attr:`FileBuffer.last_error`.
"""

from __future__ import annotations

import errno
import io
import os
import stat
import warnings
from collections.abc import Buffer
from typing import Final, Self, assert_never

from .config import StreamConfig, default_config
from .contracts import ensure, enters, invariant, require, state_machine, transition
from .errors import (
    AlreadyOpenError,
    InvalidTransitionError,
    ModeError,
    OpenFailedError,
    SeekOutOfRangeError,
    StreamClosedError,
    StreamIOError,
    WidefileError,
)
from .logging import get_logger
from .modes import AccessMode, NativeMode, OpenMode, resolve_mode
from .offsets import OffsetModel, resolve_offset_model
from .paths import StrOrBytesPath, native_path, widen
from ._regions import (
    NEUTRAL,
    UNBUFFERED,
    Borrowed,
    Neutral,
    Owned,
    Reading,
    Region,
    Storage,
    StreamState,
    Unbuffered,
    Writing,
    borrow,
)

__all__ = [
    "EOF",
    "INVALID_POSITION",
    "FileBuffer",
]

#: Returned by byte-level reads and writes that cannot produce a byte.
EOF: Final[int] = -1

#: Returned by ``seek``/``tell`` when no position can be reported.
INVALID_POSITION: Final[int] = -1

# Platforms with an O_TEXT flag translate line endings in the C runtime, so
# byte counts and descriptor offsets diverge in text mode.
_TEXT_TRANSLATION: Final[bool] = hasattr(os, "O_TEXT")

_logger = get_logger(__name__, context={"component": "filebuf"})


def _region_matches_access(buf: FileBuffer) -> tuple[bool, str]:
    region = buf._region
    access = buf.access
    if isinstance(region, Reading):
        return access is not None and access.readable, "read-ahead without read access"
    if isinstance(region, Writing):
        return access is not None and access.writable, "pending output without write access"
    return True, ""


def _closed_is_neutral(buf: FileBuffer) -> tuple[bool, str]:
    if buf._fd is None:
        return isinstance(buf._region, Neutral), "closed stream holds a region"
    return buf._native is not None, "open stream without a mode"


def _region_within_area(buf: FileBuffer) -> tuple[bool, str]:
    region = buf._region
    if isinstance(region, Reading):
        limit = len(buf._read_area())
        ok = 0 <= region.cursor <= region.end <= limit
        return ok, f"read region {region} exceeds area of {limit} bytes"
    if isinstance(region, Writing):
        limit = buf.capacity
        return 0 <= region.end <= limit, f"write region {region} exceeds {limit}"
    return True, ""


def _count_fits_buffer(buf: FileBuffer, buffer: Buffer, result: int) -> tuple[bool, str]:
    with memoryview(buffer) as view:
        size = view.nbytes
    return 0 <= result <= size, f"read {result} bytes into a {size}-byte buffer"


def _count_fits_data(buf: FileBuffer, data: Buffer, result: int) -> tuple[bool, str]:
    with memoryview(data) as view:
        size = view.nbytes
    return 0 <= result <= size, f"accepted {result} of {size} bytes"


def _position_reported(buf: FileBuffer, result: int) -> bool:
    return result == INVALID_POSITION or result >= 0


@state_machine(state_attr="state", states=StreamState, initial=StreamState.CLOSED)
@invariant(_closed_is_neutral, _region_matches_access, _region_within_area)
class FileBuffer:
    """Buffered byte stream over one native file descriptor.

    Example::

        buf = FileBuffer()
        if not buf.open("data.bin", "w+b"):
            raise buf.last_error
        buf.write(b"1234567890")
        buf.seek(0)
        assert buf.read_byte() == ord("1")
        buf.close()

    The instance is single-threaded. Only one instance ever owns a given
    descriptor or owned buffer; :meth:`swap` exchanges them.
    """

    __slots__ = (
        "__weakref__",
        "_base",
        "_cell",
        "_config",
        "_fd",
        "_last_error",
        "_native",
        "_offsets",
        "_path",
        "_region",
        "_storage",
        "_translating",
    )

    def __init__(self, config: StreamConfig | None = None) -> None:
        self._config = config if config is not None else default_config()
        self._fd: int | None = None
        self._native: NativeMode | None = None
        self._path: str | None = None
        self._storage: Storage | None = None
        # One-byte look-ahead for unbuffered and translated reads.
        self._cell = memoryview(bytearray(1))
        self._region: Region = NEUTRAL
        self._base = 0
        self._offsets: OffsetModel | None = None
        self._translating = False
        self._last_error: WidefileError | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} path={self._path!r} state={self.state.name}>"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._fd is not None:
            _ = self.close()

    def __del__(self) -> None:
        if getattr(self, "_fd", None) is not None:
            warnings.warn(
                f"unclosed {self!r}", ResourceWarning, stacklevel=2, source=self
            )
            _ = self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> StreamState:
        if self._fd is None:
            return StreamState.CLOSED
        match self._region:
            case Neutral():
                return StreamState.NEUTRAL
            case Reading():
                return StreamState.READING
            case Writing():
                return StreamState.WRITING
            case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
                assert_never(unreachable)

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    @property
    def closed(self) -> bool:
        return self._fd is None

    @property
    def handle(self) -> int | None:
        """Native descriptor, or ``None`` when closed."""
        return self._fd

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def access(self) -> AccessMode | None:
        return self._native.access if self._native is not None else None

    @property
    def binary(self) -> bool:
        return self._native is not None and self._native.binary

    @property
    def capacity(self) -> int:
        """Capacity of the configured buffer (0 when unbuffered)."""
        if self._storage is None:
            return self._config.buffer_size
        return self._storage.capacity

    @property
    def buffer_owned(self) -> bool:
        """``False`` when a caller-supplied buffer is installed."""
        return not isinstance(self._storage, Borrowed)

    @property
    def last_error(self) -> WidefileError | None:
        """Reason for the most recent sentinel result, if any."""
        return self._last_error

    @property
    def config(self) -> StreamConfig:
        return self._config

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------

    @transition(to=StreamState.NEUTRAL, when=bool)
    def open(self, path: StrOrBytesPath, mode: OpenMode | str = "r") -> bool:
        """Open ``path`` and bind its descriptor to this buffer.

        ``mode`` is an :class:`OpenMode` or an fopen-style string.

        Returns:
            ``True`` on success. ``False`` with :class:`AlreadyOpenError` if
            already open (nothing changes), or :class:`OpenFailedError` if the
            mode is unsupported or the native open fails (stays closed).

        Raises:
            ValueError: If ``mode`` is a malformed string.
            TypeError: If ``path`` is not a path-like object.
        """
        self._last_error = None
        flags = OpenMode.parse(mode)
        display = _display_path(path)

        if self._fd is not None:
            self._last_error = AlreadyOpenError(
                f"Stream already open on {self._path!r}; refusing {display!r}"
            )
            return False

        native = resolve_mode(flags)
        if native is None:
            self._fail_open(
                OpenFailedError(errno.EINVAL, f"Unsupported open mode {flags}", display)
            )
            return False

        target = native_path(path)
        try:
            fd = os.open(target, native.flags, 0o666)
        except (OSError, ValueError) as exc:
            code = exc.errno if isinstance(exc, OSError) else errno.EINVAL
            reason = exc.strerror if isinstance(exc, OSError) else str(exc)
            self._fail_open(OpenFailedError(code, reason, display), cause=exc)
            return False

        try:
            if stat.S_ISDIR(os.fstat(fd).st_mode):
                os.close(fd)
                self._fail_open(
                    OpenFailedError(errno.EISDIR, os.strerror(errno.EISDIR), display)
                )
                return False
            base = _initial_position(fd, at_end=native.at_end)
        except OSError as exc:
            os.close(fd)
            self._fail_open(OpenFailedError(exc.errno, exc.strerror, display), cause=exc)
            return False

        if self._storage is None:
            self._storage = Owned.allocate(self._config.buffer_size)
        self._fd = fd
        self._native = native
        self._path = display
        self._region = NEUTRAL
        self._base = base
        self._translating = _TEXT_TRANSLATION and not native.binary
        _logger.debug(
            "stream opened",
            event="stream.open",
            context={
                "path": display,
                "access": native.access.name,
                "binary": native.binary,
                "capacity": self.capacity,
                "position": base,
            },
        )
        return True

    @enters(StreamState.CLOSED)
    def close(self) -> bool:
        """Flush pending output, release the descriptor and reset.

        Returns ``False`` when already closed or when the flush or the native
        close failed. The descriptor is released in every case.
        """
        self._last_error = None
        fd = self._fd
        if fd is None:
            self._last_error = StreamClosedError("Stream is already closed")
            return False

        ok = self._flush()
        if not ok:
            dropped = self._region.end if isinstance(self._region, Writing) else 0
            _logger.warning(
                "pending output lost while closing",
                event="stream.flush_failed",
                context={"path": self._path, "dropped": dropped},
            )

        path = self._path
        self._fd = None
        self._native = None
        self._path = None
        self._region = NEUTRAL
        self._base = 0
        self._translating = False
        if isinstance(self._storage, Borrowed):
            self._storage.release()
            self._storage = None

        try:
            os.close(fd)
        except OSError as exc:
            if self._last_error is None:
                self._last_error = _io_error(exc, "close")
            ok = False

        _logger.debug(
            "stream closed",
            event="stream.close",
            context={"path": path, "ok": ok},
        )
        return ok

    # ------------------------------------------------------------------
    # Buffer configuration
    # ------------------------------------------------------------------

    def set_buffer(self, storage: Buffer | None) -> bool:
        """Install a caller-supplied buffer, or go unbuffered with ``None``.

        The stream borrows ``storage``: it never resizes it and drops its
        reference on :meth:`close`. The caller must keep it alive and leave
        its contents alone while installed. Any active region is synced
        first; if that fails the old buffer stays and ``False`` is returned.

        Raises:
            TypeError: If ``storage`` is read-only or not contiguous.
        """
        self._last_error = None
        replacement = UNBUFFERED if storage is None else borrow(storage)
        if not self._release_region():
            if isinstance(replacement, Borrowed):
                replacement.release()
            return False
        self._install(replacement)
        return True

    def use_default_buffer(self, capacity: int | None = None) -> bool:
        """Reinstall an owned buffer of ``capacity`` (default from config)."""
        self._last_error = None
        size = self._config.buffer_size if capacity is None else capacity
        if size < 0:
            msg = f"capacity must be non-negative (got {size})"
            raise ValueError(msg)
        if not self._release_region():
            return False
        self._install(Owned.allocate(size) if size else UNBUFFERED)
        return True

    def _release_region(self) -> bool:
        if isinstance(self._region, Neutral) or self._sync():
            return True
        cause = self._last_error
        error = InvalidTransitionError("Cannot change buffers while data is pending")
        error.__cause__ = cause
        self._last_error = error
        return False

    def _install(self, storage: Storage) -> None:
        if isinstance(self._storage, Borrowed):
            self._storage.release()
        self._storage = storage

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @transition(to=StreamState.READING, when=lambda value: value != EOF)
    def read_byte(self) -> int:
        """Return the next byte and advance, or :data:`EOF`."""
        self._last_error = None
        region = self._readable_region()
        if region is None:
            return EOF
        value = self._read_area()[region.cursor]
        region.cursor += 1
        return value

    @transition(to=StreamState.READING, when=lambda value: value != EOF)
    def peek_byte(self) -> int:
        """Return the next byte without advancing, or :data:`EOF`."""
        self._last_error = None
        region = self._readable_region()
        if region is None:
            return EOF
        return self._read_area()[region.cursor]

    def unread_byte(self) -> int:
        """Step back over the last byte served from the current read-ahead.

        Only bytes still held in the buffer can be put back; otherwise
        :data:`EOF` is returned and nothing changes.
        """
        self._last_error = None
        if not self._usable(reading=True):
            return EOF
        region = self._region
        if not isinstance(region, Reading) or region.cursor == 0:
            return EOF
        region.cursor -= 1
        return self._read_area()[region.cursor]

    @ensure(_count_fits_buffer)
    def readinto(self, buffer: Buffer) -> int:
        """Fill ``buffer`` from the stream; return the byte count.

        Stops short only at end of file or on error. Requests at least as
        large as the read area bypass it and land directly in ``buffer``.
        """
        with memoryview(buffer) as raw:
            if raw.readonly:
                msg = "readinto() requires a writable buffer"
                raise TypeError(msg)
            with raw.cast("B") as dest:
                return self._readinto(dest)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining when negative).

        Returns ``b""`` at end of file or on failure; check
        :attr:`last_error` to tell them apart.
        """
        if size >= 0:
            chunk = bytearray(size)
            count = self.readinto(chunk)
            del chunk[count:]
            return bytes(chunk)

        out = bytearray()
        chunk = bytearray(max(self.capacity, io.DEFAULT_BUFFER_SIZE))
        while True:
            count = self.readinto(chunk)
            out += chunk[:count]
            if count < len(chunk):
                return bytes(out)

    def _readinto(self, dest: memoryview) -> int:
        self._last_error = None
        want = len(dest)
        if not self._usable(reading=True) or want == 0:
            return 0

        total = 0
        while total < want:
            region = self._region
            if isinstance(region, Reading) and region.remaining:
                take = min(region.remaining, want - total)
                area = self._read_area()
                dest[total : total + take] = area[region.cursor : region.cursor + take]
                region.cursor += take
                total += take
                continue

            rest = want - total
            if rest >= len(self._read_area()) and not self._translating:
                got = self._read_direct(dest[total:])
                if got <= 0:
                    break
                total += got
            elif self._underflow() is None:
                break
        return total

    def _readable_region(self) -> Reading | None:
        if not self._usable(reading=True):
            return None
        region = self._region
        if isinstance(region, Reading) and region.remaining:
            return region
        return self._underflow()

    def _read_area(self) -> memoryview:
        storage = self._storage
        if self._translating or storage is None or isinstance(storage, Unbuffered):
            return self._cell
        return storage.view

    def _underflow(self) -> Reading | None:
        """Refill the read area; ``None`` at end of file or on error."""
        if not self._leave_for_reading():
            return None
        fd = self._require_fd()
        area = self._read_area()
        try:
            data = os.read(fd, len(area))
        except OSError as exc:
            self._last_error = _io_error(exc, "read")
            return None
        if not data:
            return None
        count = len(data)
        area[:count] = data
        region = Reading(cursor=0, end=count)
        self._region = region
        return region

    def _read_direct(self, dest: memoryview) -> int:
        if not self._leave_for_reading():
            return -1
        fd = self._require_fd()
        try:
            data = os.read(fd, len(dest))
        except OSError as exc:
            self._last_error = _io_error(exc, "read")
            return -1
        count = len(data)
        dest[:count] = data
        self._base += count
        return count

    def _leave_for_reading(self) -> bool:
        """Flush output and fold an exhausted read-ahead into ``_base``."""
        region = self._region
        if isinstance(region, Writing):
            return self._flush()
        if isinstance(region, Reading):
            if self._translating:
                self._base = self._native_position(self._base + region.end)
            else:
                self._base += region.end
            self._region = NEUTRAL
        return True

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    @transition(to=(StreamState.WRITING, StreamState.NEUTRAL), when=lambda v: v != EOF)
    def write_byte(self, value: int) -> int:
        """Write one byte; return it, or :data:`EOF` on failure.

        Raises:
            ValueError: If ``value`` is outside ``0..255``.
        """
        if not 0 <= value <= 255:
            msg = f"byte must be in range(0, 256), not {value}"
            raise ValueError(msg)
        self._last_error = None
        if not self._usable(reading=False) or not self._leave_for_writing():
            return EOF

        capacity = self.capacity
        if capacity == 0:
            return value if self._write_direct(bytes((value,))) == 1 else EOF

        region = self._region
        if isinstance(region, Writing) and region.end == capacity:
            if not self._flush():
                return EOF
            region = self._region
        if not isinstance(region, Writing):
            region = Writing(end=0)
            self._region = region
        self._write_area()[region.end] = value
        region.end += 1
        return value

    @transition(to=(StreamState.WRITING, StreamState.NEUTRAL), when=bool)
    @ensure(_count_fits_data)
    def write(self, data: Buffer) -> int:
        """Write ``data``; return the number of bytes accepted.

        A short count means the stream failed part way; see
        :attr:`last_error`.
        """
        self._last_error = None
        with memoryview(data) as raw, raw.cast("B") as src:
            size = len(src)
            if not self._usable(reading=False) or not self._leave_for_writing():
                return 0
            if size == 0:
                return 0

            capacity = self.capacity
            if capacity == 0:
                return self._write_direct(src)

            region = self._region
            pending = region.end if isinstance(region, Writing) else 0
            if size > capacity - pending:
                if not self._flush():
                    return 0
                if size >= capacity:
                    return self._write_direct(src)
                pending = 0

            self._write_area()[pending : pending + size] = src
            self._region = Writing(end=pending + size)
            return size

    def _write_area(self) -> memoryview:
        storage = self._storage
        if not isinstance(storage, (Owned, Borrowed)):  # pragma: no cover - guarded by capacity
            msg = "No write buffer installed"
            raise RuntimeError(msg)
        return storage.view

    def _leave_for_writing(self) -> bool:
        """Give back unread read-ahead so output lands at the logical position."""
        region = self._region
        if not isinstance(region, Reading):
            return True
        fd = self._require_fd()
        if region.remaining:
            try:
                if self._translating:
                    # One translated byte may span several native bytes, so
                    # return to where the look-ahead was fetched from.
                    os.lseek(fd, self._base, os.SEEK_SET)
                else:
                    os.lseek(fd, -region.remaining, os.SEEK_CUR)
            except OSError as exc:
                self._last_error = _io_error(exc, "seek")
                return False
        if self._translating:
            self._base = self._native_position(self._base + region.cursor)
        else:
            self._base += region.cursor
        self._region = NEUTRAL
        return True

    def _write_direct(self, src: memoryview | bytes) -> int:
        fd = self._require_fd()
        written = 0
        try:
            written = _write_all(fd, src)
        except _ShortWrite as short:
            written = short.written
            self._last_error = _io_error(short.cause, "write")
        self._advance_after_write(written)
        return written

    def _flush(self) -> bool:
        """Write pending output. Unwritten bytes stay pending on failure."""
        region = self._region
        if not isinstance(region, Writing):
            return True
        fd = self._require_fd()
        view = self._write_area()
        try:
            written = _write_all(fd, view[: region.end])
        except _ShortWrite as short:
            written = short.written
            view[: region.end - written] = view[written : region.end]
            region.end -= written
            self._advance_after_write(written)
            self._last_error = _io_error(short.cause, "write")
            return False
        self._region = NEUTRAL
        self._advance_after_write(written)
        return True

    @require(lambda self, written: written >= 0)
    def _advance_after_write(self, written: int) -> None:
        native = self._native
        if native is not None and (native.append or self._translating):
            self._base = self._native_position(self._base + written)
        else:
            self._base += written

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------

    @transition(
        to=(StreamState.NEUTRAL, StreamState.READING, StreamState.WRITING),
        when=lambda position: position != INVALID_POSITION,
    )
    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Reposition the stream; return the new position.

        ``seek(0, SEEK_CUR)`` is a pure position query. Otherwise pending
        output is flushed and read-ahead is dropped.

        Returns:
            The new absolute position, or :data:`INVALID_POSITION` with
            :class:`SeekOutOfRangeError` for unrepresentable targets
            (nothing changes) or :class:`StreamIOError` for native failures
            (the logical position is unchanged).

        Raises:
            ValueError: If ``whence`` is not ``SEEK_SET``, ``SEEK_CUR`` or
                ``SEEK_END``.
        """
        if whence not in {os.SEEK_SET, os.SEEK_CUR, os.SEEK_END}:
            msg = f"Invalid whence value: {whence}"
            raise ValueError(msg)
        if whence == os.SEEK_CUR and offset == 0:
            return self.tell()

        self._last_error = None
        if self._fd is None:
            self._last_error = StreamClosedError("seek on closed file")
            return INVALID_POSITION

        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            current = self.tell()
            if current == INVALID_POSITION:
                return INVALID_POSITION
            target = current + offset
        else:
            size = self._logical_size()
            if size == INVALID_POSITION:
                return INVALID_POSITION
            target = size + offset

        model = self._offset_model()
        if not model.contains(target):
            self._last_error = SeekOutOfRangeError(target, model.max_offset)
            _logger.debug(
                "seek target out of range",
                event="stream.seek_failed",
                context={"path": self._path, "target": target, "wide": model.wide},
            )
            return INVALID_POSITION

        if not self._flush():
            return INVALID_POSITION
        try:
            reached = os.lseek(self._fd, target, os.SEEK_SET)
        except (OSError, OverflowError) as exc:
            if isinstance(exc, OverflowError):
                self._last_error = SeekOutOfRangeError(target, model.max_offset)
            else:
                self._last_error = _io_error(exc, "seek")
            _logger.debug(
                "native seek failed",
                event="stream.seek_failed",
                context={"path": self._path, "target": target, "error": repr(exc)},
            )
            return INVALID_POSITION

        self._region = NEUTRAL
        self._base = reached
        return reached

    @ensure(_position_reported)
    def tell(self) -> int:
        """Return the logical position without disturbing buffered data.

        In append (and translated text) mode pending output is flushed
        first, because only the descriptor knows where it landed.
        """
        self._last_error = None
        if self._fd is None:
            self._last_error = StreamClosedError("tell on closed file")
            return INVALID_POSITION
        match self._region:
            case Neutral():
                return self._base
            case Reading(cursor=cursor, end=end):
                if self._translating and cursor == end:
                    return self._native_position(self._base + cursor)
                return self._base + cursor
            case Writing(end=end):
                native = self._native
                if native is not None and (native.append or self._translating):
                    return self._base if self._flush() else INVALID_POSITION
                return self._base + end
            case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
                assert_never(unreachable)

    @transition(to=StreamState.NEUTRAL, when=bool)
    def sync(self) -> bool:
        """Flush pending output and give back unread read-ahead.

        Afterwards the descriptor position equals the logical position, so
        the descriptor may be shared with other code.
        """
        self._last_error = None
        if self._fd is None:
            self._last_error = StreamClosedError("sync on closed file")
            return False
        return self._sync()

    def _sync(self) -> bool:
        match self._region:
            case Neutral():
                return True
            case Reading():
                return self._leave_for_writing()
            case Writing():
                return self._flush()
            case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
                assert_never(unreachable)

    def _logical_size(self) -> int:
        """File size including pending output, without flushing it."""
        if self._translating and not self._flush():
            return INVALID_POSITION
        try:
            size = os.fstat(self._require_fd()).st_size
        except OSError as exc:
            self._last_error = _io_error(exc, "seek")
            return INVALID_POSITION
        region = self._region
        native = self._native
        if isinstance(region, Writing) and native is not None:
            if native.append:
                return size + region.end
            return max(size, self._base + region.end)
        return size

    def _offset_model(self) -> OffsetModel:
        if self._offsets is None:
            self._offsets = resolve_offset_model(self._config)
        return self._offsets

    # ------------------------------------------------------------------
    # Ownership exchange
    # ------------------------------------------------------------------

    def swap(self, other: FileBuffer) -> None:
        """Exchange every piece of state with ``other`` without any I/O.

        Descriptors, buffers (owned or borrowed), pending output, read-ahead
        and positions all move, so each instance continues exactly where the
        other left off.
        """
        if other is self:
            return
        if not isinstance(other, FileBuffer):
            msg = f"swap() requires a FileBuffer, not {type(other).__name__}"
            raise TypeError(msg)
        for name in _SWAPPED_SLOTS:
            mine = getattr(self, name)
            object.__setattr__(self, name, getattr(other, name))
            object.__setattr__(other, name, mine)
        _logger.debug(
            "streams swapped",
            event="stream.swap",
            context={"left": self._path, "right": other._path},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _usable(self, *, reading: bool) -> bool:
        if self._fd is None or self._native is None:
            self._last_error = StreamClosedError("I/O operation on closed file")
            return False
        access = self._native.access
        if reading and not access.readable:
            self._last_error = ModeError("File not open for reading")
            return False
        if not reading and not access.writable:
            self._last_error = ModeError("File not open for writing")
            return False
        return True

    def _require_fd(self) -> int:
        fd = self._fd
        if fd is None:  # pragma: no cover - callers check _usable first
            msg = "descriptor required"
            raise RuntimeError(msg)
        return fd

    def _fail_open(self, error: OpenFailedError, cause: BaseException | None = None) -> None:
        error.__cause__ = cause
        self._last_error = error
        _logger.debug(
            "stream open failed",
            event="stream.open_failed",
            context={"path": error.filename, "errno": error.errno, "reason": error.strerror},
        )

    def _native_position(self, fallback: int) -> int:
        """Query the descriptor offset; ``fallback`` for unseekable files."""
        try:
            return os.lseek(self._require_fd(), 0, os.SEEK_CUR)
        except OSError:
            return fallback


_SWAPPED_SLOTS: Final[tuple[str, ...]] = tuple(
    name for name in FileBuffer.__slots__ if name != "__weakref__"
)


class _ShortWrite(Exception):
    def __init__(self, written: int, cause: OSError) -> None:
        super().__init__(written, cause)
        self.written = written
        self.cause = cause


def _write_all(fd: int, data: memoryview | bytes) -> int:
    view = memoryview(data)
    written = 0
    while written < len(view):
        try:
            count = os.write(fd, view[written:])
        except OSError as exc:
            raise _ShortWrite(written, exc) from exc
        if count == 0:
            raise _ShortWrite(written, OSError(errno.EIO, "native write made no progress"))
        written += count
    return written


def _initial_position(fd: int, *, at_end: bool) -> int:
    try:
        return os.lseek(fd, 0, os.SEEK_END if at_end else os.SEEK_CUR)
    except OSError as exc:
        if exc.errno == errno.ESPIPE:
            return 0
        raise


def _io_error(exc: OSError, operation: str) -> StreamIOError:
    code = exc.errno if exc.errno is not None else errno.EIO
    error = StreamIOError(code, f"native {operation} failed: {exc.strerror or exc}")
    error.__cause__ = exc
    return error


def _display_path(path: StrOrBytesPath) -> str:
    raw = os.fspath(path)
    return widen(raw) if isinstance(raw, bytes) else raw
