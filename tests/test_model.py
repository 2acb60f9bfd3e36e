"""
Tests for the form model.

These tests verify:
    - Authoring sections, questions and controls
    - Control identity and kind-specific helpers
    - The dependency graph built by Form.initialise()
    - The synchronous validation chain in Form.check_validity()
"""

import pytest

from metaform import validators
from metaform.data import FormData
from metaform.enums import ControlKind, DrawType, TextType
from metaform.model import (
    ControlValidityChanged,
    Form,
    OptionValue,
    Options,
    UnknownControlError,
)
from metaform.rules import BusinessRules, RuleComparison


class TestAuthoring:
    """Test building a form."""

    def test_sections_get_sequential_ids(self):
        form = Form("f")
        first = form.add_section("One")
        second = form.add_section("Two")
        assert (first.id, second.id) == (1, 2)
        assert form.get_section(2) is second

    def test_question_in_unknown_section_warns(self):
        """Naming a section that does not exist is reported, not fatal."""
        form = Form("f")
        with pytest.warns(UserWarning, match="unknown section"):
            question = form.add_question("q", section_id=9)
        assert form.get_question("q") is question

    def test_defaults(self):
        form = Form("f")
        assert form.draw_type == DrawType.SINGLE_QUESTION
        assert isinstance(form.data, FormData)

    def test_control_id(self):
        form = Form("f")
        ctl = form.add_question("about").add_text_control("name")
        assert ctl.control_id == "about:name"
        assert ctl.kind == ControlKind.TEXT
        assert ctl.text_type == TextType.SINGLE_LINE

    def test_dependency_sets_always_present(self):
        """references and is_referenced_by exist, empty, from construction."""
        ctl = Form("f").add_question("q").add_text_control("c")
        assert ctl.references == []
        assert ctl.is_referenced_by == set()

    def test_add_validator_splits_chains(self):
        ctl = Form("f").add_question("q").add_text_control("c")
        ctl.add_validator(validators.required("r")).add_validator(validators.remote("http://x", "m"))
        assert [v.kind.value for v in ctl.validators] == ["Required"]
        assert [v.kind.value for v in ctl.async_validators] == ["Async"]


class TestControlHelpers:
    """Test kind-specific helpers."""

    def test_date_parts(self):
        form = Form("f")
        ctl = form.add_question("q").add_date_time_control("when")
        form.set_value("when", "2021-07-04 12:30")
        assert (ctl.get_year(form.data), ctl.get_month(form.data), ctl.get_day(form.data)) == ("2021", "07", "04")
        assert ctl.month_names()[1] == "January"

    def test_hour_and_minute_lists(self):
        ctl = Form("f").add_question("q").add_time_control("t", minute_step=15, hour_start=8, hour_end=11)
        assert ctl.hour_list() == ["08", "09", "10"]
        assert ctl.minute_list() == ["00", "15", "30", "45"]

    def test_minute_step_out_of_range(self):
        ctl = Form("f").add_question("q").add_time_control("t", minute_step=0)
        assert len(ctl.minute_list()) == 60

    def test_telephone(self):
        form = Form("f")
        ctl = form.add_question("q").add_telephone_and_idd_control("phone")
        form.set_value("phone", "+44:7700900123")
        assert ctl.get_idd(form.data) == "+44"
        assert ctl.get_number(form.data) == "7700900123"

    def test_option_list(self):
        ctl = Form("f").add_question("q").add_option_control(
            "pick", Options.from_list([OptionValue("a", "A"), OptionValue("b", "B")]))
        assert ctl.has_option_list
        assert not ctl.has_url
        assert [o.code for o in ctl.option_list] == ["a", "b"]

    def test_option_url_references(self):
        ctl = Form("f").add_question("q").add_option_control(
            "city", Options.from_url("https://example.com/api/[country]/cities"))
        assert not ctl.has_option_list
        assert ctl.url_field_references() == ["country"]

    def test_url_for_service(self):
        form = Form("f")
        ctl = form.add_question("q").add_option_control(
            "city", Options.from_url("https://example.com/api/[country]/cities"))
        assert ctl.url_for_service(form.data) is None
        form.set_value("country", "fr")
        assert ctl.url_for_service(form.data) == "https://example.com/api/fr/cities"

    def test_url_without_references(self):
        form = Form("f")
        ctl = form.add_question("q").add_option_control("c", Options.from_url("https://example.com/all"))
        assert ctl.url_for_service(form.data) == "https://example.com/all"


def build_linked_form() -> Form:
    form = Form("linked")
    form.add_question("q1").add_text_control("password") \
        .add_validator(validators.required("Password needed"))
    form.add_question("q2").add_text_control("confirm") \
        .add_validator(validators.answer_must_match("[password]", "Passwords differ"))
    return form


class TestDependencies:
    """Test the reverse dependency index."""

    def test_validator_reference(self):
        form = build_linked_form()
        form.initialise()
        assert form.get_control("confirm").references == ["password"]
        assert form.get_control("password").is_referenced_by == {"confirm"}

    def test_option_url_reference(self):
        form = Form("f")
        form.add_question("q1").add_text_control("country")
        form.add_question("q2").add_option_control(
            "city", Options.from_url("https://example.com/api/[country]/cities"))
        form.initialise()
        assert form.get_control("country").is_referenced_by == {"city"}

    def test_rule_reference(self):
        """Controls in a rule-gated question depend on the fields the rule reads."""
        rules = BusinessRules()
        rules.add_rule("married").add_part("status", RuleComparison.EQUALS, "M")
        form = Form("f")
        form.add_question("q1").add_text_control("status")
        form.add_question("q2", rule_to_match="married").add_text_control("spouse")
        form.initialise(rules)
        assert form.get_control("status").is_referenced_by == {"spouse"}

    def test_reference_to_missing_field_warns(self):
        form = Form("f")
        form.add_question("q").add_text_control("confirm") \
            .add_validator(validators.answer_must_match("[nowhere]", "m"))
        with pytest.warns(UserWarning, match="nowhere"):
            form.initialise()

    def test_field_without_control_is_indexed(self):
        """Dependants are tracked for fields that have no control."""
        rules = BusinessRules()
        rules.add_rule("R").add_part("flag", RuleComparison.EQUALS, "Y")
        form = Form("f")
        form.add_question("q", rule_to_match="R").add_text_control("x")
        form.add_question("r").add_text_control("y") \
            .add_validator(validators.answer_must_match("[flag]", "m"))
        with pytest.warns(UserWarning, match="flag"):
            form.initialise(rules)
        assert form.dependants_of("flag") == ["x", "y"]
        assert form.dependants_of("x") == []

    def test_duplicate_control_warns(self):
        form = Form("f")
        form.add_question("q1").add_text_control("same")
        form.add_question("q2").add_text_control("same")
        with pytest.warns(UserWarning, match="already been added"):
            form.initialise()


class TestCheckValidity:
    """Test the synchronous validation chain."""

    def test_unknown_control_raises(self):
        with pytest.raises(UnknownControlError):
            Form("f").check_validity("ghost")

    def test_first_failure_wins(self):
        """The chain stops at the first failing validator."""
        form = Form("f")
        form.add_question("q").add_text_control("email") \
            .add_validator(validators.required("Needed")) \
            .add_validator(validators.email("Bad email"))

        result = form.check_validity("email")
        assert not result.is_valid
        assert result.message == "Needed"

        form.set_value("email", "not-an-email")
        result = form.check_validity("email")
        assert result.message == "Bad email"

        form.set_value("email", "ok@example.com")
        result = form.check_validity("email")
        assert result.is_valid
        assert result.message is None

    def test_control_state_updated(self):
        form = Form("f")
        ctl = form.add_question("q").add_text_control("name").add_validator(validators.required("Needed"))
        form.check_validity("name")
        assert ctl.in_error
        assert ctl.error_message == "Needed"
        form.set_value("name", "Ada")
        form.check_validity("name")
        assert not ctl.in_error
        assert ctl.error_message is None

    def test_dependent_fields_reported(self):
        form = build_linked_form()
        form.set_value("password", "secret")
        result = form.check_validity("password")
        assert result.dependent_fields == ["confirm"]

    def test_remote_skipped_without_runner(self):
        """A bare Form never creates a runner of its own."""
        form = Form("f")
        form.add_question("q").add_text_control("user") \
            .add_validator(validators.remote("https://checks.example.com", "Taken"))
        form.set_value("user", "ada")
        assert form.check_validity("user").is_valid
        assert not form.has_async_runner
        assert form.async_runner is None

    def test_labels_always_valid(self):
        form = Form("f")
        form.add_question("q").add_label("intro", "Welcome")
        assert form.check_validity("intro").is_valid

    def test_validity_events(self):
        form = Form("f")
        form.add_question("q").add_text_control("name").add_validator(validators.required("Needed"))
        events = []
        form.add_validity_observer(events.append)

        form.check_validity("name")
        form.set_value("name", "Ada")
        form.check_validity("name")

        assert events == [
            ControlValidityChanged("name", "Required", False),
            ControlValidityChanged("name", "", True),
        ]

    def test_reset(self):
        form = Form("f")
        ctl = form.add_question("q").add_text_control("name").add_validator(validators.required("Needed"))
        form.check_validity("name")
        form.reset()
        assert not ctl.in_error
        assert form.get_value("name") == ""
