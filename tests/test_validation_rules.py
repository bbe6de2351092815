"""
Tests for the validation rule evaluator and its value helpers.
"""

import math

import pytest
from pydantic import ValidationError

from grc_sync.core.enums import Severity, ValidationRuleType
from grc_sync.infrastructure.db.models.orchestration import DataValidationRule
from grc_sync.services.validation_rules import (
    DependencyLogic,
    FormatLogic,
    RangeLogic,
    UnimplementedLogic,
    ValidationRuleEvaluator,
    parse_rule_logic,
)
from grc_sync.utils.validation_utils import (
    completeness_ratio,
    is_truthy,
    parse_float,
    round_half_up,
    to_text,
)
from tests.helpers import make_rule


def rule(*args, **kwargs) -> DataValidationRule:
    return DataValidationRule.model_validate(make_rule(*args, **kwargs))


@pytest.fixture
def evaluator():
    return ValidationRuleEvaluator()


EMAIL_RULE = {"owner_email": r"^[^@\s]+@[^@\s]+\.[a-z]+$"}


class TestValueHelpers:
    """Presence, text and number handling of loosely-typed record values."""

    def test_is_truthy(self):
        assert is_truthy("x")
        assert is_truthy(1)
        assert not is_truthy(0)
        assert not is_truthy("")
        assert not is_truthy(None)
        assert not is_truthy(math.nan)
        assert not is_truthy(False)

    @pytest.mark.parametrize("value", [[], {}, "0", "false", [0]])
    def test_containers_and_strings_are_truthy(self, value):
        assert is_truthy(value)

    def test_to_text(self):
        assert to_text(True) == "true"
        assert to_text(3.0) == "3"
        assert to_text(3.5) == "3.5"
        assert to_text(None) == "null"

    @pytest.mark.parametrize("value,expected", [
        (5, 5.0),
        ("42", 42.0),
        ("  7.5 ", 7.5),
        ("12abc", 12.0),
        ("-3e2", -300.0),
        (".5", 0.5),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        ([1], None),
    ])
    def test_parse_float(self, value, expected):
        assert parse_float(value) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(66.666) == 67
        assert round_half_up(-2.5) == -2

    def test_completeness_ratio(self):
        assert completeness_ratio({}) == 0.0
        assert completeness_ratio({"a": 1, "b": None, "c": "", "d": 0}) == 0.5


class TestParseRuleLogic:

    def test_format_payload(self):
        logic = parse_rule_logic(ValidationRuleType.FORMAT, EMAIL_RULE)
        assert isinstance(logic, FormatLogic)
        assert logic.fields == EMAIL_RULE

    def test_range_payload_drops_scalars(self):
        logic = parse_rule_logic("range", {"score": {"min": 0, "max": 10}, "weight": 3})
        assert isinstance(logic, RangeLogic)
        assert list(logic.fields) == ["score"]
        assert logic.fields["score"] == {"min": 0, "max": 10}

    def test_range_payload_keeps_null_bound(self):
        logic = parse_rule_logic("range", {"score": None})
        assert logic.fields == {"score": None}

    def test_dependency_payload_ignores_non_lists(self):
        logic = parse_rule_logic("dependency", {"status": ["owner"], "broken": "owner"})
        assert isinstance(logic, DependencyLogic)
        assert logic.fields == {"status": ["owner"]}

    @pytest.mark.parametrize("rule_type", ["business_logic", "cross_module"])
    def test_unimplemented_kinds(self, rule_type):
        assert isinstance(parse_rule_logic(rule_type, {"anything": 1}), UnimplementedLogic)

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            parse_rule_logic("telepathy", {})


class TestFormatRules:

    def test_matching_value_passes(self, evaluator):
        outcome = evaluator.evaluate({"owner_email": "a@b.io"}, [rule(ValidationRuleType.FORMAT, EMAIL_RULE)])
        assert outcome.is_valid

    def test_non_matching_value_fails(self, evaluator):
        rules = [rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="email",
                      error_message="Owner email is malformed", severity=Severity.HIGH)]
        outcome = evaluator.evaluate({"owner_email": "not-an-email"}, rules)

        assert not outcome.is_valid
        assert outcome.messages == ["Owner email is malformed"]
        assert outcome.violations[0].to_dict() == {
            "rule": "email", "message": "Owner email is malformed", "severity": "high",
        }

    @pytest.mark.parametrize("value", [None, "", 0])
    def test_empty_values_are_skipped(self, evaluator, value):
        outcome = evaluator.evaluate({"owner_email": value}, [rule(ValidationRuleType.FORMAT, EMAIL_RULE)])
        assert outcome.is_valid

    def test_pattern_matches_anywhere(self, evaluator):
        outcome = evaluator.evaluate({"code": "ref CTL-12 end"}, [rule(ValidationRuleType.FORMAT, {"code": r"CTL-\d+"})])
        assert outcome.is_valid

    def test_numbers_are_matched_as_text(self, evaluator):
        outcome = evaluator.evaluate({"year": 2026}, [rule(ValidationRuleType.FORMAT, {"year": r"^\d{4}$"})])
        assert outcome.is_valid

    def test_invalid_pattern_is_a_violation(self, evaluator):
        rules = [
            rule(ValidationRuleType.FORMAT, {"code": "(["}, rule_name="broken"),
            rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="email"),
        ]
        outcome = evaluator.evaluate({"code": "x", "owner_email": "bad"}, rules)
        assert [v.rule for v in outcome.violations] == ["broken", "email"]


class TestRangeRules:

    BOUNDS = {"effectiveness": {"min": 1, "max": 5}}

    @pytest.mark.parametrize("value", [1, 5, 3.5, "4", "2.5 stars"])
    def test_values_within_bounds_pass(self, evaluator, value):
        outcome = evaluator.evaluate({"effectiveness": value}, [rule(ValidationRuleType.RANGE, self.BOUNDS)])
        assert outcome.is_valid

    @pytest.mark.parametrize("value", [0, 6, "9", "abc", None, True])
    def test_out_of_range_or_non_numeric_fails(self, evaluator, value):
        outcome = evaluator.evaluate({"effectiveness": value}, [rule(ValidationRuleType.RANGE, self.BOUNDS)])
        assert not outcome.is_valid

    def test_absent_field_passes(self, evaluator):
        outcome = evaluator.evaluate({"other": 99}, [rule(ValidationRuleType.RANGE, self.BOUNDS)])
        assert outcome.is_valid

    def test_one_sided_bound(self, evaluator):
        rules = [rule(ValidationRuleType.RANGE, {"budget": {"min": 0}})]
        assert evaluator.evaluate({"budget": 10 ** 9}, rules).is_valid
        assert not evaluator.evaluate({"budget": -1}, rules).is_valid

    def test_malformed_bound_of_absent_field_is_ignored(self, evaluator):
        outcome = evaluator.evaluate({}, [rule(ValidationRuleType.RANGE, {"effectiveness": None})])
        assert outcome.is_valid

    @pytest.mark.parametrize("bound", [None, {"min": "low"}])
    def test_malformed_bound_of_present_field_is_a_violation(self, evaluator, bound):
        logic = {"score": {"min": 0, "max": 10}, "effectiveness": bound}
        assert evaluator.evaluate({"score": 5}, [rule(ValidationRuleType.RANGE, logic)]).is_valid
        assert not evaluator.evaluate({"score": 5, "effectiveness": 3}, [rule(ValidationRuleType.RANGE, logic)]).is_valid


class TestDependencyRules:

    LOGIC = {"status": ["owner_email", "control_name"]}

    def test_required_fields_present(self, evaluator):
        record = {"status": "active", "owner_email": "a@b.io", "control_name": "MFA"}
        assert evaluator.evaluate(record, [rule(ValidationRuleType.DEPENDENCY, self.LOGIC)]).is_valid

    def test_missing_required_field_fails(self, evaluator):
        record = {"status": "active", "owner_email": "", "control_name": "MFA"}
        assert not evaluator.evaluate(record, [rule(ValidationRuleType.DEPENDENCY, self.LOGIC)]).is_valid

    @pytest.mark.parametrize("status", [None, "", 0, False])
    def test_unset_condition_skips_rule(self, evaluator, status):
        record = {"status": status}
        assert evaluator.evaluate(record, [rule(ValidationRuleType.DEPENDENCY, self.LOGIC)]).is_valid

    def test_empty_list_satisfies_requirement(self, evaluator):
        rules = [rule(ValidationRuleType.DEPENDENCY, {"tags": ["owners"]})]
        assert evaluator.evaluate({"tags": ["sox"], "owners": []}, rules).is_valid
        assert not evaluator.evaluate({"tags": ["sox"], "owners": None}, rules).is_valid


class TestRuleSelection:

    def test_unimplemented_kinds_are_reported_not_violated(self, evaluator):
        rules = [rule(ValidationRuleType.BUSINESS_LOGIC, {"expr": "a > b"}, rule_name="biz"),
                 rule(ValidationRuleType.CROSS_MODULE, {}, rule_name="xmod")]
        outcome = evaluator.evaluate({"a": 1}, rules)

        assert outcome.is_valid
        assert outcome.unimplemented == ["biz", "xmod"]

    def test_only_active_rules_of_the_table_run(self, evaluator):
        rules = [
            rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="inactive", is_active=False),
            rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="other-table", target_tables=["incident_logs"]),
            rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="wildcard", target_tables=["*"]),
            rule(ValidationRuleType.FORMAT, EMAIL_RULE, rule_name="controls"),
        ]
        outcome = evaluator.evaluate({"owner_email": "bad"}, rules, table_name="controls")
        assert [v.rule for v in outcome.violations] == ["wildcard", "controls"]

    def test_without_table_every_rule_runs(self, evaluator):
        rules = [rule(ValidationRuleType.FORMAT, EMAIL_RULE, target_tables=["incident_logs"])]
        assert not evaluator.evaluate({"owner_email": "bad"}, rules).is_valid

    def test_outcome_to_dict(self, evaluator):
        outcome = evaluator.evaluate({}, [])
        assert outcome.to_dict() == {"is_valid": True, "violations": [], "unimplemented": []}
