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

"""Dynvar runtime error types."""

from dataclasses import dataclass, field


class DynvarError(Exception):
    """Base class for all dynvar errors."""

    pass


@dataclass
class ConfigurationError(DynvarError):
    """Raised when the engine is used without a required collaborator."""

    message: str

    def __str__(self) -> str:
        return f"Configuration error: {self.message}"


@dataclass
class SubstitutionError(DynvarError):
    """Raised when placeholder substitution cannot be performed."""

    text: str
    message: str

    def __str__(self) -> str:
        return f"Substitution error: {self.message} (text: {self.text!r})"


@dataclass
class ValueResolutionError(DynvarError):
    """Raised when a value source cannot produce a value.

    This is a lookup failure (missing environment variable, unreadable
    file, failing command), not a malformed definition.
    """

    source: str
    message: str

    def __str__(self) -> str:
        return f"Cannot resolve {self.source}: {self.message}"


@dataclass
class DefinitionError(DynvarError):
    """Raised when a dynamic variable definition is structurally broken."""

    name: str
    message: str

    def __str__(self) -> str:
        return f"Invalid dynamic variable '{self.name}': {self.message}"


@dataclass
class RefreshError(DynvarError):
    """Raised when a refresh of dynamic variables must be aborted."""

    message: str
    name: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class CyclicDependencyError(RefreshError):
    """Raised when refresh does not reach a fixed point within its budget."""

    iterations: int = 0


@dataclass
class ConditionError(DynvarError):
    """Raised when a condition cannot be evaluated."""

    condition_id: str
    message: str

    def __str__(self) -> str:
        return f"Condition error for '{self.condition_id}': {self.message}"


@dataclass
class DependencyCycleError(DynvarError):
    """Raised at build time when dynamic variables depend on each other."""

    names: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return "Cyclic dependency between dynamic variables: " + " -> ".join(self.names)
