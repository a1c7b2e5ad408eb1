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

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

import widefile.contracts as contracts_module
from widefile import FileBuffer, StreamConfig
from widefile.config import ENV_BUFFER_SIZE, ENV_WIDE_OFFSETS


@pytest.fixture(autouse=True)
def reset_contract_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test with contracts enforced and a clean environment."""

    monkeypatch.delenv("WIDEFILE_CONTRACTS", raising=False)
    monkeypatch.delenv(ENV_BUFFER_SIZE, raising=False)
    monkeypatch.delenv(ENV_WIDE_OFFSETS, raising=False)
    contracts_module.enable_contracts()
    yield
    contracts_module.reset_contracts()


@pytest.fixture
def make_buffer() -> Iterator[Callable[..., FileBuffer]]:
    created: list[FileBuffer] = []

    def factory(config: StreamConfig | None = None) -> FileBuffer:
        buf = FileBuffer(config)
        created.append(buf)
        return buf

    yield factory
    for buf in created:
        if buf.is_open:
            _ = buf.close()


@pytest.fixture
def file_path(tmp_path: Path) -> Path:
    """Path with non-ASCII characters that does not exist yet."""

    return tmp_path / "widefile-ש-м-ν.txt"

