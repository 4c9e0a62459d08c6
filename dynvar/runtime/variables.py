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

"""Dynamic variable resolution engine.

:class:`Variables` owns the variable store, the registered dynamic
variable definitions and the blocking registry. :meth:`Variables.refresh`
iterates over all definitions until the store stops changing:

1. Snapshot the store
2. Evaluate every active, unblocked definition and write its value
3. Apply pending unsets (a set in the same pass wins)
4. Compare written names with the snapshot

Each pass may change inputs of definitions evaluated earlier in the same
pass, so the loop repeats until a pass changes nothing. The number of
passes is bounded by ``iteration_factor * len(definitions) + 1``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable, Mapping, Sequence

from ..config import EngineConfig
from .blocking import BlockingRegistry
from .conditions import ConditionOracle
from .definition import DynamicVariable
from .errors import (
    ConfigurationError,
    CyclicDependencyError,
    DefinitionError,
    RefreshError,
    ValueResolutionError,
)
from .store import VariableStore
from .substitutor import VariableSubstitutor, is_unresolved

logger = logging.getLogger(__name__)


class Variables:
    """Variable store with dynamic variables, conditions and blocking.

    ``add``, ``refresh`` and the blocking operations are serialized by a
    single lock. Reads and writes of individual variables are atomic but
    are not serialized against a running refresh.
    """

    def __init__(
        self,
        properties: Mapping[str, str] | None = None,
        rules: ConditionOracle | None = None,
        config: EngineConfig | None = None,
    ):
        """Initialize the engine.

        Args:
            properties: Initial variable values
            rules: Condition oracle for dynamic variable conditions
            config: Engine settings (defaults apply if omitted)
        """
        self.store = VariableStore(properties)
        self.substitutor = VariableSubstitutor(self.store)
        self.config = config or EngineConfig()
        self._rules = rules
        self._definitions: list[DynamicVariable] = []
        self._blocking = BlockingRegistry()
        self._lock = threading.RLock()

    # -- Rules --------------------------------------------------------------

    @property
    def rules(self) -> ConditionOracle | None:
        return self._rules

    def set_rules(self, rules: ConditionOracle) -> None:
        """Attach the condition oracle used during refresh."""
        self._rules = rules

    # -- Plain variables ----------------------------------------------------

    def set(self, name: str, value: str | None) -> None:
        """Set a variable; ``None`` removes it."""
        self.store.set(name, value)

    def unset(self, name: str) -> None:
        self.store.unset(name)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.store.get(name, default)

    def get_bool(self, name: str, default: bool = False) -> bool:
        return self.store.get_bool(name, default)

    def get_int(self, name: str, default: int = -1) -> int:
        return self.store.get_int(name, default)

    def get_long(self, name: str, default: int = -1) -> int:
        return self.store.get_long(name, default)

    def replace(self, value: str | None) -> str | None:
        """Replace placeholders in *value*.

        Never raises: on a substitution failure the failure is logged and
        *value* is returned unchanged.
        """
        if value is None:
            return None
        try:
            return self.substitutor.substitute(value)
        except Exception as e:
            logger.warning("%s", e, exc_info=True)
            return value

    def properties(self) -> dict[str, str]:
        """Return a copy of all current variable values."""
        return self.store.snapshot()

    # -- Dynamic variables --------------------------------------------------

    def add(self, definition: DynamicVariable) -> None:
        """Register a dynamic variable definition."""
        with self._lock:
            self._definitions.append(definition)

    def add_all(self, definitions: Iterable[DynamicVariable]) -> None:
        with self._lock:
            self._definitions.extend(definitions)

    @property
    def definitions(self) -> Sequence[DynamicVariable]:
        """Registered definitions, in registration order."""
        with self._lock:
            return list(self._definitions)

    def refresh(self) -> None:
        """Drive the store to a fixed point of all dynamic variables.

        Raises:
            ConfigurationError: If no condition oracle is attached
            RefreshError: If a definition is malformed
            CyclicDependencyError: If no fixed point is reached within budget
        """
        with self._lock:
            if self._rules is None:
                raise ConfigurationError("No condition oracle attached to variables")

            definitions = list(self._definitions)
            max_count = self.config.iteration_factor * len(definitions) + 1
            count = max_count
            pending_checked: dict[int, DynamicVariable] = {}
            unset_names: set[str] = set()
            set_names: set[str] = set()
            iterations = 0

            logger.info("Refreshing %d dynamic variable(s)", len(definitions))

            changed = True
            while changed:
                original_values = self.store.snapshot()
                changed = False
                count -= 1
                if count < 0:
                    raise CyclicDependencyError(
                        "Refresh of dynamic variables seem to produce a loop. "
                        f"Stopped after {max_count} iterations. "
                        "(Maybe a cyclic dependency of variables?)",
                        iterations=max_count,
                    )
                iterations += 1

                unset_names.clear()
                set_names.clear()

                for definition in definitions:
                    self._refresh_definition(definition, unset_names, set_names, pending_checked)

                for name in unset_names:
                    # a value set by another definition in this pass wins
                    if name not in set_names and self.store.get(name) is not None:
                        changed = True
                        self.store.unset(name)

                for name in set_names:
                    old_value = original_values.get(name)
                    if old_value is None or old_value != self.store.get(name):
                        changed = True

            for definition in pending_checked.values():
                definition.set_checked()

            logger.info("Dynamic variables refreshed after %d iteration(s)", iterations)

    def _refresh_definition(
        self,
        definition: DynamicVariable,
        unset_names: set[str],
        set_names: set[str],
        pending_checked: dict[int, DynamicVariable],
    ) -> None:
        """Evaluate one definition as part of a refresh pass."""
        name = definition.name

        if self._blocking.is_blocked(name):
            logger.debug("Dynamic variable '%s' blocked from changing due to user input", name)
            return

        condition_id = definition.condition_id
        if condition_id is not None:
            try:
                active = self._rules.is_true(condition_id)
            except Exception as e:
                raise RefreshError(f"Failed to refresh dynamic variable ({name}): {e}", name) from e
            if not active:
                if definition.auto_unset:
                    unset_names.add(name)
                return

        if definition.check_once and definition.checked:
            if definition.last_value is not None:
                # re-assert so conditions depending on it stay stable
                self.store.set(name, definition.last_value)
                set_names.add(name)
            return

        try:
            new_value = definition.evaluate(self.substitutor)
        except DefinitionError as e:
            raise RefreshError(f"Failed to refresh dynamic variable ({name}): {e}", name) from e
        except ValueResolutionError as e:
            logger.info("Dynamic variable '%s' could not be evaluated: %s", name, e)
            new_value = None
        except Exception as e:
            raise RefreshError(f"Failed to refresh dynamic variable ({name}): {e}", name) from e

        if new_value is None:
            if definition.auto_unset:
                unset_names.add(name)
            return

        self.store.set(name, new_value)
        definition.last_value = new_value
        set_names.add(name)
        if is_unresolved(new_value):
            pending_checked[id(definition)] = definition
        else:
            definition.set_checked()

    # -- Blocking -----------------------------------------------------------

    def register_blocked_names(self, names: Iterable[str] | None, blocker: Hashable) -> None:
        """Suspend automatic changes of *names* on behalf of *blocker*."""
        with self._lock:
            self._blocking.register_blocked_names(names, blocker)

    def unregister_blocked_names(self, names: Iterable[str] | None, blocker: Hashable) -> None:
        """Withdraw one block of *blocker* from each of *names*."""
        with self._lock:
            self._blocking.unregister_blocked_names(names, blocker)

    def is_blocked(self, name: str) -> bool:
        with self._lock:
            return self._blocking.is_blocked(name)
