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

"""Portable path to native path conversion.

Portable paths are UTF-8: either ``str`` or UTF-8 encoded ``bytes``. On
platforms whose native file API is wide (Windows) byte paths are decoded
before ``os.open``; elsewhere paths are handed to ``os.open`` unchanged and
Python's filesystem encoding applies.

Invalid input never aborts a conversion. Each maximal invalid UTF-8
subsequence, and each lone surrogate, becomes a single U+FFFD.
"""

from __future__ import annotations

import codecs
import os
import sys
from typing import Final

__all__ = [
    "REPLACEMENT_CHARACTER",
    "WIDE_NATIVE_PATHS",
    "StrOrBytesPath",
    "narrow",
    "native_path",
    "widen",
]

type StrOrBytesPath = str | bytes | os.PathLike[str] | os.PathLike[bytes]

REPLACEMENT_CHARACTER: Final[str] = "\ufffd"

#: True where the native open call takes UTF-16 paths.
WIDE_NATIVE_PATHS: Final[bool] = sys.platform == "win32"

_ERROR_HANDLER: Final[str] = "widefile.replace"


def _replace_with_fffd(
    error: UnicodeError,
) -> tuple[str | bytes, int]:
    if isinstance(error, UnicodeEncodeError):
        count = error.end - error.start
        return REPLACEMENT_CHARACTER.encode(error.encoding) * count, error.end
    if isinstance(error, UnicodeDecodeError):
        return REPLACEMENT_CHARACTER, error.end
    raise error


codecs.register_error(_ERROR_HANDLER, _replace_with_fffd)


def widen(data: bytes | bytearray | memoryview) -> str:
    """Decode UTF-8 ``data`` to text.

    ``b"\\xd7\\xa9\\xff"`` decodes to ``"\\u05e9\\ufffd"``; a truncated
    multi-byte sequence at the end also yields one U+FFFD.
    """

    return bytes(data).decode("utf-8", _ERROR_HANDLER)


def narrow(text: str) -> bytes:
    """Encode ``text`` as UTF-8, replacing lone surrogates with U+FFFD."""

    return text.encode("utf-8", _ERROR_HANDLER)


def native_path(path: StrOrBytesPath) -> str | bytes:
    """Return the form of ``path`` accepted by ``os.open`` on this platform.

    Raises:
        TypeError: If ``path`` is not a string, bytes or path-like object.
    """

    raw = os.fspath(path)
    if isinstance(raw, bytes):
        return widen(raw) if WIDE_NATIVE_PATHS else raw
    if WIDE_NATIVE_PATHS:
        return narrow(raw).decode("utf-8")
    return raw
