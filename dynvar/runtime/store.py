# Copyright 2025 Ralph Lemke
#
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

"""Variable store: the name -> string value mapping behind the engine."""

import logging
import re
import threading
from collections.abc import Iterator, Mapping

logger = logging.getLogger(__name__)

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1
LONG_MIN = -(2**63)
LONG_MAX = 2**63 - 1


def _parse_integer(value: str | None, low: int, high: int, default: int) -> int:
    """Parse a signed decimal integer within [low, high], else *default*."""
    if value is None or not _INTEGER_PATTERN.fullmatch(value):
        return default
    result = int(value)
    if result < low or result > high:
        return default
    return result


class VariableStore:
    """Ordered mapping of variable names to string values.

    A value of ``None`` is never stored: setting ``None`` removes the name.
    Every single-name read and write is atomic, so values are never torn
    when the store is read outside of a refresh.
    """

    def __init__(self, properties: Mapping[str, str] | None = None):
        self._values: dict[str, str] = {}
        self._lock = threading.RLock()
        if properties:
            for name, value in properties.items():
                self.set(name, value)

    def set(self, name: str, value: str | None) -> None:
        """Set *name* to *value*, or remove it when *value* is ``None``."""
        with self._lock:
            if value is not None:
                self._values[name] = value
                logger.debug("Variable '%s' set to '%s'", name, value)
            else:
                self._values.pop(name, None)
                logger.debug("Variable '%s' unset", name)

    def unset(self, name: str) -> None:
        """Remove *name* from the store if present."""
        self.set(name, None)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the value of *name*, or *default* if it is not set."""
        with self._lock:
            return self._values.get(name, default)

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Return the value of *name* as a boolean.

        Only ``true`` and ``false`` (in any case) are recognised; anything
        else, including an unset name, yields *default*.
        """
        value = self.get(name)
        if value is None:
            return default
        if value.lower() == "true":
            return True
        if value.lower() == "false":
            return False
        return default

    def get_int(self, name: str, default: int = -1) -> int:
        """Return the value of *name* as a 32-bit integer, or *default*."""
        return _parse_integer(self.get(name), INT_MIN, INT_MAX, default)

    def get_long(self, name: str, default: int = -1) -> int:
        """Return the value of *name* as a 64-bit integer, or *default*."""
        return _parse_integer(self.get(name), LONG_MIN, LONG_MAX, default)

    def snapshot(self) -> dict[str, str]:
        """Return an atomic copy of all current values."""
        with self._lock:
            return dict(self._values)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"VariableStore({self.snapshot()!r})"
