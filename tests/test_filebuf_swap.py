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

"""Tests for exchanging state between two FileBuffer instances."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from widefile import EOF, FileBuffer, StreamState

type Factory = Callable[..., FileBuffer]


@pytest.fixture
def second_path(file_path: Path) -> Path:
    return file_path.with_name(file_path.name + ".2")


def _put(buf: FileBuffer, text: str) -> None:
    data = text.encode()
    assert buf.write_byte(data[0]) == data[0]
    assert buf.write(data[1:]) == len(data) - 1


class TestSwap:
    """Descriptors, buffers and regions move together."""

    def test_descriptor_and_borrowed_buffers_move(
        self, make_buffer: Factory, file_path: Path, second_path: Path
    ) -> None:
        buf1, buf2 = make_buffer(), make_buffer()
        assert buf1.set_buffer(bytearray(3))
        assert buf2.set_buffer(bytearray(5))
        assert buf1.open(file_path, "w")

        buf1.swap(buf2)
        assert buf1.closed
        assert buf2.is_open
        assert buf1.capacity == 5
        assert buf2.capacity == 3
        assert buf1.open(second_path, "wb")

        _put(buf1, "Hello")
        _put(buf2, "Foo")
        buf2.swap(buf1)
        _put(buf1, "Bar")
        _put(buf2, "World")

        assert buf1.close()
        assert buf1.closed
        assert buf2.is_open
        buf1.swap(buf2)
        assert buf1.is_open
        assert buf2.closed
        assert buf1.close()
        assert file_path.read_bytes() == b"FooBar"
        assert second_path.read_bytes() == b"HelloWorld"

    def test_access_modes_move(
        self, make_buffer: Factory, file_path: Path, second_path: Path
    ) -> None:
        second_path.write_bytes(b"HelloWorld")
        buf1, buf2 = make_buffer(), make_buffer()
        assert buf1.set_buffer(bytearray(3))
        assert buf1.open(file_path, "w")
        assert buf2.open(second_path, "r")
        assert buf2.buffer_owned

        assert buf1.write_byte(ord("B")) == ord("B")
        assert buf2.read_byte() == ord("H")
        buf1.swap(buf2)
        assert buf1.buffer_owned
        assert buf2.buffer_owned is False
        assert buf1.write_byte(ord("x")) == EOF
        assert buf2.read_byte() == EOF
        assert buf1.read_byte() == ord("e")
        assert buf2.write_byte(ord("a")) == ord("a")

        buf2.swap(buf1)
        assert buf2.write_byte(ord("x")) == EOF
        assert buf1.read_byte() == EOF
        assert buf2.read_byte() == ord("l")
        assert buf1.write(b"zXYZ") == 4

        buf2.swap(buf1)
        assert buf1.close()
        assert buf2.close()
        assert file_path.read_bytes() == b"BazXYZ"
        assert second_path.read_bytes() == b"HelloWorld"

    def test_read_ahead_moves(
        self, make_buffer: Factory, file_path: Path, second_path: Path
    ) -> None:
        file_path.write_bytes(b"BazXYZ")
        second_path.write_bytes(b"HelloWorld")
        buf1, buf2 = make_buffer(), make_buffer()
        assert buf1.set_buffer(None)
        assert buf1.open(file_path, "r")
        assert buf2.open(second_path, "r")

        assert buf1.peek_byte() == ord("B")
        assert buf2.peek_byte() == ord("H")
        buf1.swap(buf2)
        assert buf2.peek_byte() == ord("B")
        assert buf1.peek_byte() == ord("H")

        assert buf2.read_byte() == ord("B")
        assert buf1.read_byte() == ord("H")
        assert buf2.read_byte() == ord("a")
        assert buf1.read_byte() == ord("e")
        buf1.swap(buf2)
        assert buf1.read_byte() == ord("z")
        assert buf2.read_byte() == ord("l")
        buf1.swap(buf2)
        assert buf2.peek_byte() == ord("X")
        assert buf1.peek_byte() == ord("l")
        assert buf2.tell() == 3
        assert buf1.tell() == 3

    def test_pending_output_moves(
        self, make_buffer: Factory, file_path: Path, second_path: Path
    ) -> None:
        buf1, buf2 = make_buffer(), make_buffer()
        assert buf1.set_buffer(None)
        assert buf1.open(file_path, "w")
        assert buf2.open(second_path, "w")
        assert buf1.write_byte(ord("1")) == ord("1")
        assert buf2.write_byte(ord("a")) == ord("a")

        buf1.swap(buf2)
        assert buf1.state is StreamState.WRITING
        assert buf2.state is StreamState.NEUTRAL
        assert buf1.write_byte(ord("b")) == ord("b")
        assert buf2.write_byte(ord("2")) == ord("2")
        assert buf1.sync()
        assert second_path.read_bytes() == b"ab"
        assert buf2.sync()
        assert file_path.read_bytes() == b"12"

        buf1.swap(buf2)
        assert buf1.sync()
        assert file_path.read_bytes() == b"12"
        assert buf2.sync()
        assert second_path.read_bytes() == b"ab"
        assert buf1.write_byte(ord("3")) == ord("3")
        assert buf2.write_byte(ord("c")) == ord("c")

        buf1.swap(buf2)
        assert buf1.sync()
        assert second_path.read_bytes() == b"abc"
        assert buf2.sync()
        assert file_path.read_bytes() == b"123"

    def test_self_swap_is_noop(self, make_buffer: Factory, file_path: Path) -> None:
        buf = make_buffer()
        assert buf.open(file_path, "wb")
        assert buf.write(b"abc") == 3
        buf.swap(buf)
        assert buf.state is StreamState.WRITING
        assert buf.tell() == 3

    def test_swap_with_closed_instance(
        self, make_buffer: Factory, file_path: Path
    ) -> None:
        open_buf, closed_buf = make_buffer(), make_buffer()
        assert open_buf.open(file_path, "wb")
        assert open_buf.write(b"moved") == 5
        open_buf.swap(closed_buf)
        assert open_buf.closed
        assert closed_buf.state is StreamState.WRITING
        assert closed_buf.close()
        assert file_path.read_bytes() == b"moved"

    def test_swap_requires_filebuffer(self, make_buffer: Factory) -> None:
        buf = make_buffer()
        with pytest.raises(TypeError, match="FileBuffer"):
            buf.swap(object())  # type: ignore[arg-type]

    def test_swap_is_logged(
        self,
        make_buffer: Factory,
        file_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        buf1, buf2 = make_buffer(), make_buffer()
        assert buf1.open(file_path, "wb")
        with caplog.at_level(logging.DEBUG, logger="widefile._filebuf"):
            buf1.swap(buf2)
        (record,) = caplog.records
        assert getattr(record, "event") == "stream.swap"
        assert getattr(record, "context")["right"] == str(file_path)
