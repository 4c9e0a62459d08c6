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

"""Blocking registry for variable names under manual control."""

from collections.abc import Hashable, Iterable


class BlockingRegistry:
    """Per-name stacks of blocker tokens.

    A name is blocked while at least one blocker is registered for it.
    The same blocker may be pushed several times; each removal takes
    away one occurrence.
    """

    def __init__(self) -> None:
        self._stacks: dict[str, list[Hashable]] = {}

    def register_blocked_names(self, names: Iterable[str] | None, blocker: Hashable) -> None:
        """Push *blocker* onto the stack of each name."""
        if names is None:
            return
        for name in names:
            self._stacks.setdefault(name, []).append(blocker)

    def unregister_blocked_names(self, names: Iterable[str] | None, blocker: Hashable) -> None:
        """Remove one occurrence of *blocker* from the stack of each name."""
        if names is None:
            return
        for name in names:
            stack = self._stacks.get(name)
            if stack and blocker in stack:
                stack.remove(blocker)

    def is_blocked(self, name: str) -> bool:
        """Return True if any blocker is registered for *name*."""
        return bool(self._stacks.get(name))

    def blocked_names(self) -> set[str]:
        """Return all currently blocked names."""
        return {name for name, stack in self._stacks.items() if stack}
