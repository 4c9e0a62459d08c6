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

"""Conditions gating dynamic variables.

The refresh loop only needs a :class:`ConditionOracle`. :class:`RulesEngine`
is the default oracle: it evaluates named conditions built from variable
comparisons and boolean combinators against the current variable values.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .errors import ConditionError

logger = logging.getLogger(__name__)

ValueLookup = Callable[[str], "str | None"]


@runtime_checkable
class ConditionOracle(Protocol):
    """Answers whether a named condition currently holds."""

    def is_true(self, condition_id: str) -> bool: ...


class Condition(ABC):
    """A boolean predicate over variable values."""

    @abstractmethod
    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        """Evaluate the condition.

        Args:
            rules: Engine giving access to variables and other conditions
            seen: Condition ids currently being evaluated (cycle guard)
        """

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""

    def referenced_conditions(self) -> set[str]:
        """Return the ids of conditions this one refers to."""
        return set()


@dataclass
class VariableCondition(Condition):
    """Compares a variable with a literal: ``name == "value"``."""

    variable: str
    value: str
    operator: str = "=="

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        current = rules.lookup(self.variable)
        if self.operator == "==":
            return current == self.value
        if self.operator == "!=":
            return current != self.value
        raise ConditionError(self.variable, f"Unknown operator: {self.operator}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "VariableCondition",
            "variable": self.variable,
            "operator": self.operator,
            "value": self.value,
        }


@dataclass
class DefinedCondition(Condition):
    """True when a variable is set."""

    variable: str

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        return rules.lookup(self.variable) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "DefinedCondition", "variable": self.variable}


@dataclass
class RefCondition(Condition):
    """Refers to another named condition."""

    condition_id: str

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        return rules.evaluate(self.condition_id, seen)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "RefCondition", "conditionId": self.condition_id}

    def referenced_conditions(self) -> set[str]:
        return {self.condition_id}


@dataclass
class NotCondition(Condition):
    operand: Condition

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        return not self.operand.evaluate(rules, seen)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "NotCondition", "operand": self.operand.to_dict()}

    def referenced_conditions(self) -> set[str]:
        return self.operand.referenced_conditions()


@dataclass
class AndCondition(Condition):
    operands: list[Condition] = field(default_factory=list)

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        return all(op.evaluate(rules, seen) for op in self.operands)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "AndCondition", "operands": [op.to_dict() for op in self.operands]}

    def referenced_conditions(self) -> set[str]:
        refs: set[str] = set()
        for op in self.operands:
            refs |= op.referenced_conditions()
        return refs


@dataclass
class OrCondition(Condition):
    operands: list[Condition] = field(default_factory=list)

    def evaluate(self, rules: "RulesEngine", seen: frozenset[str]) -> bool:
        return any(op.evaluate(rules, seen) for op in self.operands)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "OrCondition", "operands": [op.to_dict() for op in self.operands]}

    def referenced_conditions(self) -> set[str]:
        refs: set[str] = set()
        for op in self.operands:
            refs |= op.referenced_conditions()
        return refs


def condition_from_dict(data: dict[str, Any]) -> Condition:
    """Create a condition from its dictionary form.

    Raises:
        ValueError: If the condition type is unknown
    """
    cond_type = data.get("type", "")
    if cond_type == "VariableCondition":
        return VariableCondition(
            variable=data.get("variable", ""),
            value=data.get("value", ""),
            operator=data.get("operator", "=="),
        )
    elif cond_type == "DefinedCondition":
        return DefinedCondition(variable=data.get("variable", ""))
    elif cond_type == "RefCondition":
        return RefCondition(condition_id=data.get("conditionId", ""))
    elif cond_type == "NotCondition":
        return NotCondition(operand=condition_from_dict(data.get("operand", {})))
    elif cond_type == "AndCondition":
        return AndCondition(operands=[condition_from_dict(d) for d in data.get("operands", [])])
    elif cond_type == "OrCondition":
        return OrCondition(operands=[condition_from_dict(d) for d in data.get("operands", [])])
    raise ValueError(f"Unknown condition type: {cond_type}")


class RulesEngine:
    """Evaluates named conditions against current variable values."""

    def __init__(
        self,
        lookup: ValueLookup,
        conditions: dict[str, Condition] | None = None,
    ):
        """Initialize the rules engine.

        Args:
            lookup: Returns the current value of a variable, or None
            conditions: Initial conditions by id
        """
        self.lookup = lookup
        self._conditions: dict[str, Condition] = dict(conditions or {})

    def add_condition(self, condition_id: str, condition: Condition) -> None:
        """Register (or replace) a named condition."""
        self._conditions[condition_id] = condition

    def add_conditions(self, conditions: Iterable[tuple[str, Condition]]) -> None:
        for condition_id, condition in conditions:
            self.add_condition(condition_id, condition)

    def get_condition(self, condition_id: str) -> Condition | None:
        return self._conditions.get(condition_id)

    @property
    def condition_ids(self) -> list[str]:
        return list(self._conditions)

    def is_true(self, condition_id: str) -> bool:
        """Return whether the named condition currently holds.

        Unknown conditions are reported and treated as false.

        Raises:
            ConditionError: If conditions refer to each other in a cycle
        """
        return self.evaluate(condition_id, frozenset())

    def evaluate(self, condition_id: str, seen: frozenset[str]) -> bool:
        if condition_id in seen:
            raise ConditionError(condition_id, "Cyclic condition reference")
        condition = self._conditions.get(condition_id)
        if condition is None:
            logger.warning("Condition '%s' not found, treating as false", condition_id)
            return False
        return condition.evaluate(self, seen | {condition_id})
