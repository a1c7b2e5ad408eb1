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

"""
Stateful property-based tests for FileBuffer.

Hypothesis drives a read-write stream through random interleavings of
byte and block transfers, seeks, syncs and buffer changes while a plain
``bytearray`` tracks the expected file contents and position.

Properties verified:
- Reads return exactly the modelled bytes at the logical position.
- ``tell`` always equals the modelled position.
- After ``close`` the file on disk equals the model.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from hypothesis import settings, strategies as st
from hypothesis.stateful import (
    RuleBasedStateMachine,
    initialize,
    invariant,
    precondition,
    rule,
)

from widefile import EOF, FileBuffer, StreamConfig, StreamState

# =============================================================================
# Reference Model
# =============================================================================


@dataclass
class FileModel:
    """Expected file contents and logical position."""

    content: bytearray = field(default_factory=bytearray)
    position: int = 0

    def write(self, data: bytes) -> None:
        end = self.position + len(data)
        if data and self.position > len(self.content):
            self.content.extend(bytes(self.position - len(self.content)))
        self.content[self.position : end] = data
        self.position = end

    def read(self, size: int) -> bytes:
        data = bytes(self.content[self.position : self.position + size])
        self.position += len(data)
        return data


# =============================================================================
# State Machine
# =============================================================================


class FileBufferMachine(RuleBasedStateMachine):
    """Random operation sequences on a ``w+b`` stream."""

    def __init__(self) -> None:
        super().__init__()
        self.directory = Path(tempfile.mkdtemp(prefix="widefile-"))
        self.path = self.directory / "stateful.bin"
        self.model = FileModel()
        self.buf = FileBuffer()
        # Borrowed buffers must outlive their installation.
        self.borrowed: list[bytearray] = []

    @initialize(capacity=st.integers(min_value=1, max_value=9))
    def open_stream(self, capacity: int) -> None:
        self.buf = FileBuffer(StreamConfig(buffer_size=capacity, wide_offsets=True))
        assert self.buf.open(self.path, "w+b")

    @rule(data=st.binary(max_size=24))
    def write_block(self, data: bytes) -> None:
        assert self.buf.write(data) == len(data)
        self.model.write(data)

    @rule(value=st.integers(min_value=0, max_value=255))
    def write_byte(self, value: int) -> None:
        assert self.buf.write_byte(value) == value
        self.model.write(bytes((value,)))

    @rule(size=st.integers(min_value=0, max_value=24))
    def read_block(self, size: int) -> None:
        assert self.buf.read(size) == self.model.read(size)

    @rule()
    def read_byte(self) -> None:
        expected = self.model.read(1)
        assert self.buf.read_byte() == (expected[0] if expected else EOF)

    @rule()
    def peek_byte(self) -> None:
        position = self.model.position
        expected = self.model.content[position : position + 1]
        assert self.buf.peek_byte() == (expected[0] if expected else EOF)

    @rule(position=st.integers(min_value=0, max_value=40))
    def seek_absolute(self, position: int) -> None:
        assert self.buf.seek(position) == position
        self.model.position = position

    @rule(offset=st.integers(min_value=-40, max_value=10))
    def seek_from_end(self, offset: int) -> None:
        target = len(self.model.content) + offset
        result = self.buf.seek(offset, os.SEEK_END)
        if target < 0:
            assert result == -1
        else:
            assert result == target
            self.model.position = target

    @rule(offset=st.integers(min_value=-10, max_value=10))
    def seek_relative(self, offset: int) -> None:
        target = self.model.position + offset
        result = self.buf.seek(offset, os.SEEK_CUR)
        if target < 0:
            assert result == -1
        else:
            assert result == target
            self.model.position = target

    @rule()
    def sync(self) -> None:
        assert self.buf.sync()
        assert self.buf.state is StreamState.NEUTRAL
        assert self.path.read_bytes() == bytes(self.model.content)

    @rule(size=st.integers(min_value=0, max_value=6))
    def borrow_buffer(self, size: int) -> None:
        storage = bytearray(size)
        self.borrowed.append(storage)
        assert self.buf.set_buffer(storage)
        assert self.buf.capacity == size

    @precondition(lambda self: not self.buf.buffer_owned)
    @rule()
    def restore_default_buffer(self) -> None:
        assert self.buf.use_default_buffer()
        assert self.buf.buffer_owned

    @invariant()
    def position_matches_model(self) -> None:
        if self.buf.is_open:
            assert self.buf.tell() == self.model.position

    def teardown(self) -> None:
        try:
            if self.buf.is_open:
                assert self.buf.close()
                assert self.path.read_bytes() == bytes(self.model.content)
        finally:
            shutil.rmtree(self.directory, ignore_errors=True)


TestFileBufferStateful = FileBufferMachine.TestCase
TestFileBufferStateful.settings = settings(
    max_examples=60,
    stateful_step_count=40,
    deadline=None,
)


def test_empty_write_past_end_leaves_file_size() -> None:
    state = FileBufferMachine()
    state.open_stream(capacity=3)
    state.seek_absolute(position=1)
    state.write_block(data=b"")
    state.seek_absolute(position=0)
    state.read_block(size=1)
    state.sync()
    state.teardown()
