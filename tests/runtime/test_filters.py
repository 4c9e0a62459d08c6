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

"""Tests for value filters."""

import os

import pytest

from dynvar.runtime import (
    LocationFilter,
    RegexFilter,
    VariableStore,
    VariableSubstitutor,
    filter_from_dict,
)


@pytest.fixture
def substitutor():
    return VariableSubstitutor(VariableStore({"base": "/opt", "sep": "."}))


class TestRegexFilter:
    """Tests for RegexFilter."""

    def test_select_group(self, substitutor):
        f = RegexFilter(r"version (\d+)\.(\d+)", select=r"\1")
        assert f.filter("java version 17.0 build", substitutor) == "17"

    def test_select_template(self, substitutor):
        f = RegexFilter(r"(\d+)\.(\d+)", select=r"\2-\1")
        assert f.filter("v1.2", substitutor) == "2-1"

    def test_replace_first(self, substitutor):
        f = RegexFilter("a", replace="b")
        assert f.filter("aaa", substitutor) == "baa"

    def test_replace_global(self, substitutor):
        f = RegexFilter("a", replace="b", global_=True)
        assert f.filter("aaa", substitutor) == "bbb"

    def test_replace_with_group(self, substitutor):
        f = RegexFilter(r"(\w+)@(\w+)", replace=r"\2 at \1")
        assert f.filter("joe@host", substitutor) == "host at joe"

    def test_no_match_returns_input(self, substitutor):
        f = RegexFilter("xyz", select=r"\0")
        assert f.filter("abc", substitutor) == "abc"

    def test_no_match_returns_default(self, substitutor):
        f = RegexFilter("xyz", select=r"\0", default="none")
        assert f.filter("abc", substitutor) == "none"

    def test_case_insensitive(self, substitutor):
        f = RegexFilter("LINUX", select="yes", case_sensitive=False)
        assert f.filter("linux", substitutor) == "yes"

    def test_case_sensitive_by_default(self, substitutor):
        f = RegexFilter("LINUX", select="yes", default="no")
        assert f.filter("linux", substitutor) == "no"

    def test_fields_are_substituted(self, substitutor):
        f = RegexFilter(r"(\d+)${sep}(\d+)", select=r"${base}/\1")
        assert f.filter("3.4", substitutor) == "/opt/3"

    def test_validate_requires_select_or_replace(self):
        assert RegexFilter("a").validate()

    def test_validate_bad_pattern(self):
        problems = RegexFilter("(unclosed", select=r"\1").validate()
        assert any("invalid regular expression" in p for p in problems)

    def test_validate_skips_patterns_with_placeholders(self):
        assert RegexFilter("(${partial}", select="x").validate() == []

    def test_unresolved_names(self):
        f = RegexFilter("${a}", select="${b}", default="${c}")
        assert f.unresolved_variable_names() == {"a", "b", "c"}


class TestLocationFilter:
    """Tests for LocationFilter."""

    def test_normalizes(self, substitutor):
        assert LocationFilter().filter("/opt/app/../lib/./x", substitutor) == os.path.normpath(
            "/opt/lib/x"
        )

    def test_expands_user(self, substitutor, monkeypatch):
        monkeypatch.setenv("HOME", "/home/joe")
        assert LocationFilter().filter("~/app", substitutor) == os.path.normpath("/home/joe/app")

    def test_relative_to_base(self, substitutor):
        f = LocationFilter(base_dir="${base}")
        assert f.filter("app/bin", substitutor) == os.path.normpath("/opt/app/bin")

    def test_absolute_ignores_base(self, substitutor):
        f = LocationFilter(base_dir="/opt")
        assert f.filter("/usr/bin", substitutor) == os.path.normpath("/usr/bin")


class TestFilterFromDict:
    def test_regex(self):
        f = filter_from_dict(
            {"type": "regex", "regexp": "a", "replace": "b", "caseSensitive": False, "global": True}
        )
        assert f == RegexFilter("a", replace="b", case_sensitive=False, global_=True)

    def test_location(self):
        assert filter_from_dict({"type": "location", "baseDir": "/x"}) == LocationFilter("/x")

    def test_round_trip(self):
        f = RegexFilter("(a)", select=r"\1", default="d")
        assert filter_from_dict(f.to_dict()) == f

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            filter_from_dict({"type": "upper"})
