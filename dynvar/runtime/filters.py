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

"""Filters applied to a resolved dynamic variable value."""

import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .substitutor import VariableSubstitutor, parse_unresolved_names

# \1 style group references in select/replace templates
_GROUP_REFERENCE = re.compile(r"\\(\d+)")


class ValueFilter(ABC):
    """Transforms a resolved value."""

    type_name: str = ""

    @abstractmethod
    def filter(self, value: str, substitutor: VariableSubstitutor) -> str:
        """Return the filtered value.

        Raises:
            re.error: If a pattern is invalid
        """

    @abstractmethod
    def texts(self) -> list[str]:
        """Return the raw string fields of this filter."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""

    def validate(self) -> list[str]:
        """Return a list of problems with this filter (empty if valid)."""
        return []

    def unresolved_variable_names(self) -> set[str]:
        return parse_unresolved_names(*self.texts())


def _expand(template: str, match: re.Match) -> str:
    """Expand \\N group references in *template* from *match*."""

    def _group(ref: re.Match) -> str:
        index = int(ref.group(1))
        if index > (match.re.groups or 0):
            return ref.group(0)
        return match.group(index) or ""

    return _GROUP_REFERENCE.sub(_group, template)


@dataclass
class RegexFilter(ValueFilter):
    """Select from or rewrite a value with a regular expression.

    Exactly one of ``select`` and ``replace`` is normally given. ``select``
    returns the first match expanded through the template; ``replace``
    rewrites the first match, or every match when ``global_`` is set. When
    nothing matches, ``default`` is returned if given, else the input.
    """

    regexp: str
    select: str | None = None
    replace: str | None = None
    default: str | None = None
    case_sensitive: bool = True
    global_: bool = False
    type_name = "regex"

    def _compile(self, substitutor: VariableSubstitutor) -> re.Pattern:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        return re.compile(substitutor.substitute(self.regexp), flags)

    def filter(self, value: str, substitutor: VariableSubstitutor) -> str:
        pattern = self._compile(substitutor)
        match = pattern.search(value)
        if match is None:
            if self.default is not None:
                return substitutor.substitute(self.default)
            return value

        if self.select is not None:
            return _expand(substitutor.substitute(self.select), match)

        if self.replace is not None:
            template = substitutor.substitute(self.replace)
            return pattern.sub(
                lambda m: _expand(template, m), value, count=0 if self.global_ else 1
            )

        return value

    def texts(self) -> list[str]:
        return [t for t in (self.regexp, self.select, self.replace, self.default) if t]

    def validate(self) -> list[str]:
        problems = []
        if self.select is None and self.replace is None:
            problems.append("regex filter needs 'select' or 'replace'")
        if not parse_unresolved_names(self.regexp):
            try:
                re.compile(self.regexp)
            except re.error as e:
                problems.append(f"invalid regular expression '{self.regexp}': {e}")
        return problems

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type_name, "regexp": self.regexp}
        if self.select is not None:
            data["select"] = self.select
        if self.replace is not None:
            data["replace"] = self.replace
        if self.default is not None:
            data["default"] = self.default
        data["caseSensitive"] = self.case_sensitive
        data["global"] = self.global_
        return data


@dataclass
class LocationFilter(ValueFilter):
    """Treat the value as a path: expand ``~``, anchor it and normalize it."""

    base_dir: str | None = None
    type_name = "location"

    def filter(self, value: str, substitutor: VariableSubstitutor) -> str:
        path = os.path.expanduser(value)
        if self.base_dir:
            base = os.path.expanduser(substitutor.substitute(self.base_dir))
            path = os.path.join(base, path)
        return os.path.normpath(path)

    def texts(self) -> list[str]:
        return [self.base_dir] if self.base_dir else []

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type_name}
        if self.base_dir:
            data["baseDir"] = self.base_dir
        return data


def filter_from_dict(data: dict[str, Any]) -> ValueFilter:
    """Create a filter from its dictionary form.

    Raises:
        ValueError: If the filter type is unknown
    """
    filter_type = data.get("type", "")
    if filter_type == RegexFilter.type_name:
        return RegexFilter(
            regexp=data.get("regexp", ""),
            select=data.get("select"),
            replace=data.get("replace"),
            default=data.get("default"),
            case_sensitive=data.get("caseSensitive", True),
            global_=data.get("global", False),
        )
    elif filter_type == LocationFilter.type_name:
        return LocationFilter(base_dir=data.get("baseDir"))
    raise ValueError(f"Unknown filter type: {filter_type}")
