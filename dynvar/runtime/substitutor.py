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

"""Placeholder substitution.

Recognises two placeholder forms:
- ``${name}`` (any characters except braces)
- ``$name`` (dotted identifier, e.g. ``$app.home``)

Names that are not currently set are left in place, so a partially
resolved string can be completed by a later pass.
"""

import re

from .errors import SubstitutionError
from .store import VariableStore

PLACEHOLDER_PATTERN = re.compile(
    r"\$\{([^{}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)"
)

# "${" that is never closed, or closes immediately
_MALFORMED_PATTERN = re.compile(r"\$\{(?![^{}]+\})")


def is_unresolved(text: str) -> bool:
    """Return True if *text* still contains a placeholder."""
    return PLACEHOLDER_PATTERN.search(text) is not None


def parse_unresolved_names(*texts: str | None) -> set[str]:
    """Return the names referenced by placeholders in *texts*."""
    names: set[str] = set()
    for text in texts:
        if not text:
            continue
        for match in PLACEHOLDER_PATTERN.finditer(text):
            names.add(match.group(1) or match.group(2))
    return names


class VariableSubstitutor:
    """Replaces placeholders with values from a :class:`VariableStore`."""

    def __init__(self, store: VariableStore):
        self._store = store

    def substitute(self, text: str) -> str:
        """Return *text* with every known placeholder replaced.

        Raises:
            SubstitutionError: If *text* is not a string or contains a
                malformed placeholder
        """
        if not isinstance(text, str):
            raise SubstitutionError(repr(text), "Only strings can be substituted")

        malformed = _MALFORMED_PATTERN.search(text)
        if malformed:
            raise SubstitutionError(
                text, f"Unterminated placeholder at offset {malformed.start()}"
            )

        def _replace(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            value = self._store.get(name)
            return match.group(0) if value is None else value

        return PLACEHOLDER_PATTERN.sub(_replace, text)
