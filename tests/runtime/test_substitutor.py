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

"""Tests for placeholder substitution."""

import pytest

from dynvar.runtime import (
    SubstitutionError,
    VariableStore,
    VariableSubstitutor,
    is_unresolved,
    parse_unresolved_names,
)


@pytest.fixture
def substitutor():
    store = VariableStore({"user.home": "/home/joe", "app": "demo", "empty": ""})
    return VariableSubstitutor(store)


class TestSubstitute:
    """Tests for VariableSubstitutor.substitute."""

    def test_braced_placeholder(self, substitutor):
        assert substitutor.substitute("${user.home}/bin") == "/home/joe/bin"

    def test_bare_placeholder(self, substitutor):
        assert substitutor.substitute("$app-1") == "demo-1"

    def test_bare_dotted_placeholder(self, substitutor):
        assert substitutor.substitute("$user.home") == "/home/joe"

    def test_multiple_placeholders(self, substitutor):
        assert substitutor.substitute("${user.home}/${app}") == "/home/joe/demo"

    def test_unknown_name_left_in_place(self, substitutor):
        assert substitutor.substitute("${missing}/${app}") == "${missing}/demo"

    def test_empty_value_replaces(self, substitutor):
        assert substitutor.substitute("[${empty}]") == "[]"

    def test_no_placeholders(self, substitutor):
        assert substitutor.substitute("plain text $ 5") == "plain text $ 5"

    def test_values_are_not_rescanned(self):
        store = VariableStore({"a": "${b}", "b": "x"})
        assert VariableSubstitutor(store).substitute("${a}") == "${b}"

    def test_unterminated_placeholder_raises(self, substitutor):
        with pytest.raises(SubstitutionError, match="Unterminated"):
            substitutor.substitute("${app")

    def test_empty_placeholder_raises(self, substitutor):
        with pytest.raises(SubstitutionError):
            substitutor.substitute("${}")

    def test_non_string_raises(self, substitutor):
        with pytest.raises(SubstitutionError):
            substitutor.substitute(42)


class TestUnresolvedNames:
    """Tests for placeholder scanning."""

    def test_is_unresolved(self):
        assert is_unresolved("${a}")
        assert is_unresolved("x $a")
        assert not is_unresolved("resolved")
        assert not is_unresolved("costs $5")

    def test_parse_names(self):
        assert parse_unresolved_names("${a}/$b.c", "${d}") == {"a", "b.c", "d"}

    def test_parse_names_skips_none(self):
        assert parse_unresolved_names(None, "", "${a}") == {"a"}
