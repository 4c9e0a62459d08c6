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

"""Dynamic variable definitions.

A definition names a variable, a value source, optional filters and the
policies the refresh loop applies to it. Several definitions may share a
name, typically guarded by different conditions.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .errors import DefinitionError, SubstitutionError, ValueResolutionError
from .filters import ValueFilter, filter_from_dict
from .substitutor import VariableSubstitutor
from .values import PlainValue, Value, value_from_dict

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class DynamicVariable:
    """A named, conditionally active value producer.

    Definitions compare and hash by identity: two definitions with equal
    fields are still distinct vertices for the refresh loop and the
    dependency graph.

    Attributes:
        name: Variable name the definition writes
        value: Value source
        condition_id: Condition gating the definition (None = always active)
        check_once: Freeze the value once it fully resolves
        auto_unset: Remove the variable when inactive or unresolvable
        ignore_failure: Treat value lookup failures as "no value"
        filters: Filters applied in order to the resolved value
        checked: Set by the engine once the value is locked
        last_value: Last value the engine wrote for this definition
    """

    name: str
    value: Value
    condition_id: str | None = None
    check_once: bool = False
    auto_unset: bool = False
    ignore_failure: bool = False
    filters: list[ValueFilter] = field(default_factory=list)
    checked: bool = field(default=False, repr=False)
    last_value: str | None = field(default=None, repr=False)

    def evaluate(self, substitutor: VariableSubstitutor) -> str | None:
        """Produce the current value of this definition.

        The result may still contain placeholders that cannot be resolved
        yet.

        Returns:
            The value, or None if the source failed and failures are ignored

        Raises:
            DefinitionError: If the definition is malformed, or its source
                failed and failures are not ignored
        """
        try:
            result = self.value.resolve(substitutor)
            for value_filter in self.filters:
                result = value_filter.filter(result, substitutor)
        except ValueResolutionError as e:
            if self.ignore_failure:
                logger.info("Dynamic variable '%s' has no value: %s", self.name, e)
                return None
            raise DefinitionError(self.name, str(e)) from e
        except SubstitutionError as e:
            raise DefinitionError(self.name, str(e)) from e
        except re.error as e:
            raise DefinitionError(self.name, f"invalid regular expression: {e}") from e
        return result

    def set_checked(self) -> None:
        """Lock this definition (only affects check-once definitions)."""
        self.checked = True

    @property
    def unresolved_variable_names(self) -> set[str]:
        """Names of other variables referenced by the raw definition."""
        names = self.value.unresolved_variable_names()
        for value_filter in self.filters:
            names |= value_filter.unresolved_variable_names()
        return names

    def validate(self) -> list[str]:
        """Return a list of problems with this definition (empty if valid)."""
        problems = list(self.value.validate())
        for value_filter in self.filters:
            problems.extend(value_filter.validate())
        return problems

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        data: dict[str, Any] = {"name": self.name, "value": self.value.to_dict()}
        if self.condition_id:
            data["conditionId"] = self.condition_id
        data["checkonce"] = self.check_once
        data["autoUnset"] = self.auto_unset
        data["ignoreFailure"] = self.ignore_failure
        if self.filters:
            data["filters"] = [f.to_dict() for f in self.filters]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DynamicVariable":
        """Create from a dictionary.

        Raises:
            ValueError: If the name is missing or a value/filter type is unknown
        """
        name = data.get("name")
        if not name:
            raise ValueError("Dynamic variable without a name")
        value_data = data.get("value", {})
        if isinstance(value_data, str):
            value: Value = PlainValue(value=value_data)
        else:
            value = value_from_dict(value_data)
        return cls(
            name=name,
            value=value,
            condition_id=data.get("conditionId"),
            check_once=data.get("checkonce", False),
            auto_unset=data.get("autoUnset", False),
            ignore_failure=data.get("ignoreFailure", False),
            filters=[filter_from_dict(f) for f in data.get("filters", [])],
        )
