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

"""Configuration for :class:`~widefile.FileBuffer` defaults.

Sources are layered: a TOML/YAML file (or an in-memory mapping), then the
``WIDEFILE_*`` environment variables, then explicit overrides.  A file may
keep its settings at the root or under a ``[widefile]`` table::

    [widefile]
    buffer_size = 16384
    wide_offsets = "auto"
"""

from __future__ import annotations

import io
import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

ENV_BUFFER_SIZE = "WIDEFILE_BUFFER_SIZE"
ENV_WIDE_OFFSETS = "WIDEFILE_WIDE_OFFSETS"

DEFAULT_BUFFER_SIZE = io.DEFAULT_BUFFER_SIZE

__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "ENV_BUFFER_SIZE",
    "ENV_WIDE_OFFSETS",
    "StreamConfig",
    "default_config",
    "load_config",
]

_TRUE_WORDS = frozenset({"1", "on", "true", "yes", "wide", "64"})
_FALSE_WORDS = frozenset({"0", "off", "false", "no", "narrow", "32"})
_AUTO_WORDS = frozenset({"", "auto", "probe"})


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Resolved stream defaults.

    Attributes:
        buffer_size: Capacity of the owned buffer allocated at open time.
        wide_offsets: ``True``/``False`` forces 64-bit or 32-bit offset
            semantics; ``None`` probes the platform once per process.
    """

    buffer_size: int = DEFAULT_BUFFER_SIZE
    wide_offsets: bool | None = None

    def __post_init__(self) -> None:
        if isinstance(self.buffer_size, bool) or not isinstance(
            self.buffer_size, int
        ):
            msg = f"buffer_size must be an integer (got {self.buffer_size!r})."
            raise ConfigError(msg)
        if self.buffer_size < 1:
            msg = f"buffer_size must be positive (got {self.buffer_size})."
            raise ConfigError(msg)


def default_config(env: Mapping[str, str] | None = None) -> StreamConfig:
    """Return the configuration implied by the environment alone."""

    return load_config({}, env=env)


def load_config(
    source: Path | str | Mapping[str, Any] | None = None,
    overrides: Mapping[str, object] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> StreamConfig:
    """Load and validate a :class:`StreamConfig`.

    Parameters
    ----------
    source:
        Path to a ``.toml``/``.yaml``/``.yml`` file, or a mapping (tests pass
        mappings to skip filesystem I/O). ``None`` means no file.
    overrides:
        Explicit values that win over every other source. ``None`` values are
        ignored.
    env:
        Optional environment mapping. Defaults to :data:`os.environ`.
    """

    env_map = os.environ if env is None else env

    if source is None:
        raw: dict[str, object] = {}
    elif isinstance(source, Mapping):
        raw = dict(cast(Mapping[str, object], source))
    else:
        raw = _load_config_file(Path(source))

    section = raw.get("widefile")
    if isinstance(section, Mapping):
        raw = dict(cast(Mapping[str, object], section))

    config: dict[str, object] = {
        "buffer_size": raw.get("buffer_size"),
        "wide_offsets": raw.get("wide_offsets"),
    }
    if ENV_BUFFER_SIZE in env_map:
        config["buffer_size"] = env_map[ENV_BUFFER_SIZE]
    if ENV_WIDE_OFFSETS in env_map:
        config["wide_offsets"] = env_map[ENV_WIDE_OFFSETS]
    for key, value in (overrides or {}).items():
        if key not in config:
            msg = f"Unknown configuration key: {key!r}"
            raise ConfigError(msg)
        if value is not None:
            config[key] = value

    return StreamConfig(
        buffer_size=_coerce_buffer_size(config["buffer_size"]),
        wide_offsets=_coerce_wide_offsets(config["wide_offsets"]),
    )


def _load_config_file(path: Path) -> dict[str, object]:
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    suffix = path.suffix.lower()
    data: object
    if suffix == ".toml":
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    elif suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    else:
        msg = f"Unsupported configuration format: {path.suffix}"
        raise ConfigError(msg)

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigError(msg)
    return {str(key): value for key, value in cast(Mapping[object, object], data).items()}


def _coerce_buffer_size(value: object) -> int:
    if value is None:
        return DEFAULT_BUFFER_SIZE
    if isinstance(value, bool):
        msg = f"buffer_size must be an integer (got {value!r})."
        raise ConfigError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip().replace("_", ""))
        except ValueError as exc:
            msg = f"Invalid buffer_size: {value!r}"
            raise ConfigError(msg) from exc
    msg = f"buffer_size must be an integer (got {type(value).__name__})."
    raise ConfigError(msg)


def _coerce_wide_offsets(value: object) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _AUTO_WORDS:
            return None
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    msg = f"wide_offsets must be a boolean or 'auto' (got {value!r})."
    raise ConfigError(msg)
