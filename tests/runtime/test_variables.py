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

"""Tests for the dynamic variable refresh loop."""

import logging
import threading

import pytest

from dynvar.config import EngineConfig
from dynvar.runtime import (
    ConfigurationError,
    CyclicDependencyError,
    DynamicVariable,
    EnvironmentValue,
    PlainValue,
    RefCondition,
    RefreshError,
    RulesEngine,
    Value,
    VariableCondition,
    Variables,
)


class CountingValue(Value):
    """Produces a new value on every evaluation, so it never settles."""

    type_name = "counting"

    def __init__(self):
        self.calls = 0

    def resolve(self, substitutor):
        self.calls += 1
        return str(self.calls)

    def texts(self):
        return []

    def to_dict(self):
        return {"type": self.type_name}


class FailingValue(Value):
    type_name = "failing"

    def resolve(self, substitutor):
        raise RuntimeError("boom")

    def texts(self):
        return []

    def to_dict(self):
        return {"type": self.type_name}


def _engine(properties=None, conditions=None, config=None) -> Variables:
    variables = Variables(properties=properties, config=config)
    rules = RulesEngine(variables.get)
    for condition_id, condition in (conditions or {}).items():
        rules.add_condition(condition_id, condition)
    variables.set_rules(rules)
    return variables


def _dynamic(name, text, **kwargs) -> DynamicVariable:
    return DynamicVariable(name, PlainValue(text), **kwargs)


class TestPlainVariables:
    """Tests for the store-facing API."""

    def test_set_get_unset(self):
        variables = _engine()
        variables.set("a", "1")
        assert variables.get("a") == "1"
        variables.set("a", None)
        assert variables.get("a") is None
        variables.set("b", "2")
        variables.unset("b")
        assert variables.properties() == {}

    def test_typed_getters(self):
        variables = _engine({"flag": "TRUE", "n": "12", "big": "5000000000"})
        assert variables.get_bool("flag") is True
        assert variables.get_int("n") == 12
        assert variables.get_int("big") == -1
        assert variables.get_long("big") == 5000000000

    def test_replace(self):
        variables = _engine({"home": "/home/joe"})
        assert variables.replace("${home}/bin") == "/home/joe/bin"
        assert variables.replace("${unknown}") == "${unknown}"
        assert variables.replace(None) is None

    def test_replace_never_raises(self, caplog):
        variables = _engine()
        with caplog.at_level(logging.WARNING):
            assert variables.replace("${broken") == "${broken"
        assert "Unterminated" in caplog.text

    def test_annotations_not_evaluated_against_set_method(self):
        # Variables.set shadows the builtin inside the class body
        annotations = Variables._refresh_definition.__annotations__
        assert annotations["unset_names"] == "set[str]"
        assert annotations["set_names"] == "set[str]"


class TestRefreshConvergence:
    """Tests for reaching a fixed point."""

    def test_empty_refresh(self):
        variables = _engine({"a": "1"})
        variables.refresh()
        assert variables.properties() == {"a": "1"}

    def test_simple_definition(self):
        variables = _engine({"user.home": "/home/joe"})
        variables.add(_dynamic("app.home", "${user.home}/app"))
        variables.refresh()
        assert variables.get("app.home") == "/home/joe/app"

    def test_consumer_registered_before_producer(self):
        variables = _engine()
        variables.add(_dynamic("b", "${a}/b"))
        variables.add(_dynamic("a", "x"))
        variables.refresh()
        assert variables.get("b") == "x/b"

    def test_chain(self):
        variables = _engine()
        variables.add_all(
            [
                _dynamic("d", "${c}-d"),
                _dynamic("c", "${b}-c"),
                _dynamic("b", "${a}-b"),
                _dynamic("a", "a"),
            ]
        )
        variables.refresh()
        assert variables.get("d") == "a-b-c-d"

    def test_unknown_reference_stays_literal(self):
        variables = _engine()
        variables.add(_dynamic("a", "${never}/x"))
        variables.refresh()
        assert variables.get("a") == "${never}/x"

    def test_follows_input_changes(self):
        variables = _engine({"base": "1"})
        variables.add(_dynamic("derived", "v${base}"))
        variables.refresh()
        assert variables.get("derived") == "v1"
        variables.set("base", "2")
        variables.refresh()
        assert variables.get("derived") == "v2"

    def test_condition_on_dynamic_variable(self):
        variables = _engine(conditions={"is_x": VariableCondition("mode", "x")})
        variables.add(_dynamic("out", "on", condition_id="is_x"))
        variables.add(_dynamic("mode", "x"))
        variables.refresh()
        assert variables.get("out") == "on"

    def test_unknown_condition_is_inactive(self):
        variables = _engine()
        variables.add(_dynamic("a", "x", condition_id="nope"))
        variables.refresh()
        assert variables.get("a") is None

    def test_refresh_is_idempotent(self, caplog):
        variables = _engine()
        variables.add(_dynamic("b", "b"))
        variables.add(_dynamic("a", "${b}/a"))
        with caplog.at_level(logging.INFO, logger="dynvar.runtime.variables"):
            variables.refresh()
        assert "refreshed after 2 iteration(s)" in caplog.text
        first = variables.properties()
        assert first == {"b": "b", "a": "b/a"}

        caplog.clear()
        with caplog.at_level(logging.INFO, logger="dynvar.runtime.variables"):
            variables.refresh()
        assert "refreshed after 1 iteration(s)" in caplog.text
        assert variables.properties() == first


class TestIterationBudget:
    """Tests for the bounded number of refresh passes."""

    def test_budget_single_definition(self):
        value = CountingValue()
        variables = _engine()
        variables.add(DynamicVariable("n", value))
        with pytest.raises(CyclicDependencyError):
            variables.refresh()
        assert value.calls == 11

    def test_budget_scales_with_definitions(self):
        value = CountingValue()
        variables = _engine()
        variables.add(DynamicVariable("n", value))
        variables.add(_dynamic("a", "a"))
        variables.add(_dynamic("b", "b"))
        with pytest.raises(CyclicDependencyError) as exc_info:
            variables.refresh()
        assert value.calls == 31
        assert exc_info.value.iterations == 31

    def test_budget_from_config(self):
        value = CountingValue()
        variables = _engine(config=EngineConfig(iteration_factor=2))
        variables.add(DynamicVariable("n", value))
        with pytest.raises(CyclicDependencyError):
            variables.refresh()
        assert value.calls == 3

    def test_mutual_references_raise(self):
        variables = _engine()
        variables.add(_dynamic("X", "a${Y}"))
        variables.add(_dynamic("Y", "b${X}"))
        with pytest.raises(CyclicDependencyError) as exc_info:
            variables.refresh()
        message = str(exc_info.value)
        assert "Stopped after 21 iterations" in message
        assert "cyclic dependency" in message


class TestCheckOnce:
    """Tests for check-once definitions."""

    def test_value_frozen_after_first_resolution(self):
        variables = _engine({"base": "1"})
        variables.add(_dynamic("frozen", "v${base}", check_once=True))
        variables.refresh()
        variables.set("base", "2")
        variables.refresh()
        assert variables.get("frozen") == "v1"

    def test_frozen_value_is_reasserted(self):
        variables = _engine()
        variables.add(_dynamic("a", "v1", check_once=True))
        variables.refresh()
        variables.set("a", "v2")
        variables.refresh()
        assert variables.get("a") == "v1"

    def test_waits_for_inputs_within_refresh(self):
        variables = _engine()
        variables.add(_dynamic("frozen", "${a}/x", check_once=True))
        variables.add(_dynamic("a", "A"))
        variables.refresh()
        assert variables.get("frozen") == "A/x"

    def test_unresolvable_definition_is_frozen_after_refresh(self):
        variables = _engine()
        definition = _dynamic("frozen", "${later}/x", check_once=True)
        variables.add(definition)
        variables.refresh()
        assert definition.checked
        variables.set("later", "L")
        variables.refresh()
        assert variables.get("frozen") == "${later}/x"

    def test_inactive_definition_is_not_frozen(self):
        variables = _engine(conditions={"on": VariableCondition("switch", "on")})
        definition = _dynamic("a", "x", check_once=True, condition_id="on")
        variables.add(definition)
        variables.refresh()
        assert not definition.checked


class TestAutoUnset:
    """Tests for auto-unset definitions."""

    def test_unset_when_condition_false(self):
        variables = _engine(
            {"feature": "on"}, conditions={"enabled": VariableCondition("feature", "on")}
        )
        variables.add(_dynamic("f.path", "/opt/f", condition_id="enabled", auto_unset=True))
        variables.refresh()
        assert variables.get("f.path") == "/opt/f"
        variables.set("feature", "off")
        variables.refresh()
        assert variables.get("f.path") is None

    def test_kept_without_auto_unset(self):
        variables = _engine(
            {"feature": "on"}, conditions={"enabled": VariableCondition("feature", "on")}
        )
        variables.add(_dynamic("f.path", "/opt/f", condition_id="enabled"))
        variables.refresh()
        variables.set("feature", "off")
        variables.refresh()
        assert variables.get("f.path") == "/opt/f"

    def test_set_wins_over_unset(self):
        variables = _engine(conditions={"never": VariableCondition("x", "y")})
        variables.add(_dynamic("a", "off", condition_id="never", auto_unset=True))
        variables.add(_dynamic("a", "on"))
        variables.refresh()
        assert variables.get("a") == "on"

    def test_set_wins_regardless_of_order(self):
        variables = _engine(conditions={"never": VariableCondition("x", "y")})
        variables.add(_dynamic("a", "on"))
        variables.add(_dynamic("a", "off", condition_id="never", auto_unset=True))
        variables.refresh()
        assert variables.get("a") == "on"

    def test_ignored_failure_unsets(self, monkeypatch):
        monkeypatch.delenv("DYNVAR_TEST_UNSET", raising=False)
        variables = _engine({"a": "stale"})
        variables.add(
            DynamicVariable(
                "a", EnvironmentValue("DYNVAR_TEST_UNSET"), ignore_failure=True, auto_unset=True
            )
        )
        variables.refresh()
        assert variables.get("a") is None

    def test_ignored_failure_keeps_value_without_auto_unset(self, monkeypatch):
        monkeypatch.delenv("DYNVAR_TEST_UNSET", raising=False)
        variables = _engine({"a": "stale"})
        variables.add(DynamicVariable("a", EnvironmentValue("DYNVAR_TEST_UNSET"), ignore_failure=True))
        variables.refresh()
        assert variables.get("a") == "stale"


class TestBlocking:
    """Tests for user-blocked variables."""

    def test_blocked_variable_not_changed(self):
        variables = _engine()
        variables.add(_dynamic("a", "computed"))
        variables.set("a", "user")
        variables.register_blocked_names(["a"], "panel")
        variables.refresh()
        assert variables.get("a") == "user"
        assert variables.is_blocked("a")

    def test_blocked_variable_not_unset(self):
        variables = _engine({"a": "user"}, conditions={"never": VariableCondition("x", "y")})
        variables.add(_dynamic("a", "x", condition_id="never", auto_unset=True))
        variables.register_blocked_names(["a"], "panel")
        variables.refresh()
        assert variables.get("a") == "user"

    def test_nested_blocking(self):
        variables = _engine()
        variables.add(_dynamic("a", "computed"))
        variables.set("a", "user")
        variables.register_blocked_names(["a"], "panel1")
        variables.register_blocked_names(["a"], "panel2")
        variables.unregister_blocked_names(["a"], "panel1")
        variables.refresh()
        assert variables.get("a") == "user"

        variables.unregister_blocked_names(["a"], "panel2")
        variables.refresh()
        assert variables.get("a") == "computed"

    def test_dependents_see_blocked_value(self):
        variables = _engine()
        variables.add(_dynamic("a", "computed"))
        variables.add(_dynamic("b", "${a}!"))
        variables.set("a", "user")
        variables.register_blocked_names(["a"], "panel")
        variables.refresh()
        assert variables.get("b") == "user!"


class TestRefreshErrors:
    """Tests for refresh failures."""

    def test_no_rules(self):
        variables = Variables()
        variables.add(_dynamic("a", "x"))
        with pytest.raises(ConfigurationError):
            variables.refresh()

    def test_unexpected_exception_is_wrapped(self):
        variables = _engine()
        variables.add(DynamicVariable("bad", FailingValue()))
        with pytest.raises(RefreshError, match=r"Failed to refresh dynamic variable \(bad\)") as exc_info:
            variables.refresh()
        assert exc_info.value.name == "bad"

    def test_lookup_failure_not_ignored(self, monkeypatch):
        monkeypatch.delenv("DYNVAR_TEST_UNSET", raising=False)
        variables = _engine()
        variables.add(DynamicVariable("env", EnvironmentValue("DYNVAR_TEST_UNSET")))
        with pytest.raises(RefreshError):
            variables.refresh()

    def test_malformed_definition(self):
        variables = _engine()
        variables.add(_dynamic("a", "${oops"))
        with pytest.raises(RefreshError):
            variables.refresh()

    def test_cyclic_condition_is_wrapped(self):
        variables = _engine(conditions={"a": RefCondition("b"), "b": RefCondition("a")})
        variables.add(_dynamic("gated", "x", condition_id="a"))
        with pytest.raises(RefreshError, match="Cyclic condition reference") as exc_info:
            variables.refresh()
        assert exc_info.value.name == "gated"

    def test_oracle_failure_is_wrapped(self):
        class BrokenOracle:
            def is_true(self, condition_id):
                raise RuntimeError("oracle broke")

        variables = Variables()
        variables.set_rules(BrokenOracle())
        variables.add(_dynamic("gated", "x", condition_id="linux"))
        with pytest.raises(RefreshError, match=r"\(gated\): oracle broke") as exc_info:
            variables.refresh()
        assert exc_info.value.name == "gated"
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestConcurrency:
    def test_concurrent_refresh_and_add(self):
        variables = _engine({"base": "b"})
        variables.add(_dynamic("a", "${base}/a"))
        errors: list[Exception] = []

        def worker(index: int) -> None:
            try:
                variables.add(_dynamic(f"v{index}", "${a}/" + str(index)))
                variables.refresh()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        variables.refresh()
        for i in range(8):
            assert variables.get(f"v{i}") == f"b/a/{i}"
