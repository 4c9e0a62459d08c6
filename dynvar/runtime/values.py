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

"""Value sources for dynamic variables.

Each value kind produces a string from some source:
- PlainValue: the expression text itself
- EnvironmentValue: an OS environment variable
- FileValue: the content of a text file
- ExecValue: the standard output of a command

All string fields are substituted before use, so any of them may
reference other variables.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ValueResolutionError
from .substitutor import VariableSubstitutor, parse_unresolved_names

logger = logging.getLogger(__name__)


class Value(ABC):
    """A source that resolves to a string."""

    type_name: str = ""

    @abstractmethod
    def resolve(self, substitutor: VariableSubstitutor) -> str:
        """Resolve the value.

        Raises:
            ValueResolutionError: If the source cannot produce a value
            SubstitutionError: If a field contains a malformed placeholder
        """

    @abstractmethod
    def texts(self) -> list[str]:
        """Return the raw string fields of this value."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""

    def validate(self) -> list[str]:
        """Return a list of problems with this value (empty if valid)."""
        return []

    def unresolved_variable_names(self) -> set[str]:
        """Return the variable names referenced by this value."""
        return parse_unresolved_names(*self.texts())


@dataclass
class PlainValue(Value):
    """The expression text itself."""

    value: str
    type_name = "plain"

    def resolve(self, substitutor: VariableSubstitutor) -> str:
        return substitutor.substitute(self.value)

    def texts(self) -> list[str]:
        return [self.value]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "value": self.value}


@dataclass
class EnvironmentValue(Value):
    """An OS environment variable."""

    variable: str
    type_name = "env"

    def resolve(self, substitutor: VariableSubstitutor) -> str:
        name = substitutor.substitute(self.variable)
        value = os.environ.get(name)
        if value is None:
            raise ValueResolutionError(f"env({name})", "environment variable is not set")
        return value

    def texts(self) -> list[str]:
        return [self.variable]

    def validate(self) -> list[str]:
        if not self.variable:
            return ["environment variable name is empty"]
        return []

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "variable": self.variable}


@dataclass
class FileValue(Value):
    """The content of a text file, without its trailing newline."""

    path: str
    encoding: str = "utf-8"
    type_name = "file"

    def resolve(self, substitutor: VariableSubstitutor) -> str:
        path = substitutor.substitute(self.path)
        try:
            text = Path(path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ValueResolutionError(f"file({path})", str(e)) from e
        return text.rstrip("\r\n")

    def texts(self) -> list[str]:
        return [self.path]

    def validate(self) -> list[str]:
        if not self.path:
            return ["file path is empty"]
        return []

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type_name, "path": self.path, "encoding": self.encoding}


@dataclass
class ExecValue(Value):
    """The standard output of a command, stripped of surrounding whitespace."""

    command: list[str] = field(default_factory=list)
    directory: str | None = None
    type_name = "exec"

    def resolve(self, substitutor: VariableSubstitutor) -> str:
        args = [substitutor.substitute(arg) for arg in self.command]
        cwd = substitutor.substitute(self.directory) if self.directory else None
        logger.debug("Executing %s (cwd=%s)", args, cwd)
        try:
            completed = subprocess.run(
                args, cwd=cwd, capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise ValueResolutionError(f"exec({' '.join(args)})", str(e)) from e
        if completed.returncode != 0:
            raise ValueResolutionError(
                f"exec({' '.join(args)})",
                f"exit code {completed.returncode}: {completed.stderr.strip()}",
            )
        return completed.stdout.strip()

    def texts(self) -> list[str]:
        texts = list(self.command)
        if self.directory:
            texts.append(self.directory)
        return texts

    def validate(self) -> list[str]:
        if not self.command:
            return ["exec command is empty"]
        return []

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type_name, "command": list(self.command)}
        if self.directory:
            data["directory"] = self.directory
        return data


def value_from_dict(data: dict[str, Any]) -> Value:
    """Create a value from its dictionary form.

    Raises:
        ValueError: If the value type is unknown
    """
    value_type = data.get("type", "plain")
    if value_type == PlainValue.type_name:
        return PlainValue(value=data.get("value", ""))
    elif value_type == EnvironmentValue.type_name:
        return EnvironmentValue(variable=data.get("variable", ""))
    elif value_type == FileValue.type_name:
        return FileValue(path=data.get("path", ""), encoding=data.get("encoding", "utf-8"))
    elif value_type == ExecValue.type_name:
        return ExecValue(
            command=list(data.get("command", [])),
            directory=data.get("directory"),
        )
    raise ValueError(f"Unknown value type: {value_type}")
