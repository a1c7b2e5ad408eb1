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

"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from widefile.logging import (
    StructuredLogger,
    _coerce_level,
    configure_logging,
    get_logger,
)


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextmanager
def _capture(logger: logging.Logger) -> Iterator[list[logging.LogRecord]]:
    handler = _CaptureHandler()
    logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        handler.close()


def _logger_levels() -> dict[str, int]:
    return {
        name: logger.level
        for name, logger in logging.root.manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    original_levels = _logger_levels()
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)
        for name in _logger_levels():
            logging.getLogger(name).setLevel(original_levels.get(name, logging.NOTSET))


def test_structured_logger_emits_structured_records() -> None:
    logger = get_logger("tests.logging").bind(component="unit-test")
    base_logger = logger.logger
    base_logger.setLevel(logging.INFO)

    with _capture(base_logger) as records:
        logger.info("structured", event="tests.event", context={"attempt": 1})

    assert len(records) == 1
    record = records[0]
    assert record.getMessage() == "structured"
    assert getattr(record, "event") == "tests.event"
    assert getattr(record, "context") == {"component": "unit-test", "attempt": 1}


def test_structured_logger_requires_event() -> None:
    logger = get_logger("tests.logging.missing")
    logger.logger.setLevel(logging.INFO)

    with pytest.raises(TypeError, match="event"):
        logger.info("no event")


def test_structured_logger_rejects_non_mapping_context() -> None:
    logger = get_logger("tests.logging.context")
    logger.logger.setLevel(logging.INFO)

    with pytest.raises(TypeError, match="mapping"):
        logger.info("bad", event="tests.bad", context=["nope"])


def test_extra_mapping_is_merged_into_context() -> None:
    logger = get_logger("tests.logging.extra", context={"fd": 3})
    logger.logger.setLevel(logging.DEBUG)

    with _capture(logger.logger) as records:
        logger.debug("merged", event="tests.extra", extra={"offset": 12})

    assert getattr(records[0], "context") == {"fd": 3, "offset": 12}


def test_bind_returns_new_adapter() -> None:
    base = get_logger("tests.logging.bind", context={"a": 1})
    bound = base.bind(b=2)

    assert isinstance(bound, StructuredLogger)
    assert bound is not base
    assert bound.extra == {"a": 1, "b": 2}
    assert base.extra == {"a": 1}


def test_configure_logging_json_mode(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(level="debug", json_mode=True, env={}, force=True)
    logger = get_logger("tests.logging.json", context={"component": "filebuf"})

    logger.warning("flush failed", event="stream.flush_failed", context={"dropped": 4})

    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "tests.logging.json"
    assert payload["event"] == "stream.flush_failed"
    assert payload["context"] == {"component": "filebuf", "dropped": 4}
    assert payload["message"] == "flush failed"
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_text_mode_from_env(
    capsys: pytest.CaptureFixture[str],
) -> None:
    env = {"WIDEFILE_LOG_LEVEL": "warning", "WIDEFILE_LOG_FORMAT": "text"}
    configure_logging(env=env, force=True)
    logger = get_logger("tests.logging.text")

    logger.info("hidden", event="tests.hidden")
    logger.error("shown", event="tests.shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "ERROR tests.logging.text tests.shown shown" in err
    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_respects_existing_handlers() -> None:
    root = logging.getLogger()
    handler = _CaptureHandler()
    root.addHandler(handler)
    handlers_before = list(root.handlers)

    configure_logging(level=logging.ERROR, env={})

    assert root.handlers == handlers_before
    assert root.level == logging.ERROR


def test_coerce_level() -> None:
    assert _coerce_level(None) == logging.INFO
    assert _coerce_level(logging.DEBUG) == logging.DEBUG
    assert _coerce_level(" warning ") == logging.WARNING

    with pytest.raises(TypeError, match="Unknown log level"):
        _ = _coerce_level("LOUD")


def test_parent_level_changes_are_local_to_a_test() -> None:
    get_logger("tests.isolation").logger.setLevel(logging.DEBUG)
    assert logging.getLogger("tests.isolation.child").getEffectiveLevel() == logging.DEBUG


def test_child_inherits_root_level_after_parent_was_changed() -> None:
    logging.getLogger().setLevel(logging.WARNING)
    assert logging.getLogger("tests.isolation").level == logging.NOTSET
    child = logging.getLogger("tests.isolation.child")
    assert child.getEffectiveLevel() == logging.WARNING
