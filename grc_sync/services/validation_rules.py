"""
Validation rule evaluator.

Rules carry a loosely-typed ``validation_logic`` payload whose shape depends
on the rule type. The payload is parsed into a typed logic model here, at the
edge, and then applied to a record.
"""

import re
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from grc_sync.core.enums import Severity, ValidationRuleType
from grc_sync.core.logging import get_logger
from grc_sync.infrastructure.db.models.orchestration import DataValidationRule
from grc_sync.utils.validation_utils import is_truthy, parse_float, to_text

logger = get_logger(__name__)


class RangeBound(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


class FormatLogic(BaseModel):
    """field -> regular expression the field's text must contain a match for"""
    kind: Literal["format"] = "format"
    fields: Dict[str, Any] = Field(default_factory=dict)


class RangeLogic(BaseModel):
    """
    field -> inclusive numeric bounds

    Bounds stay raw until a record carries the field, so a malformed bound
    only matters for records that have it.
    """
    kind: Literal["range"] = "range"
    fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def drop_scalar_bounds(cls, value: Any) -> Any:
        # Scalars are not bounds and are ignored; null is kept so it fails when checked
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if v is None or isinstance(v, (dict, RangeBound))}
        return value


class DependencyLogic(BaseModel):
    """condition field -> fields required whenever the condition field is set"""
    kind: Literal["dependency"] = "dependency"
    fields: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def drop_non_lists(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if isinstance(v, list)}
        return value


class UnimplementedLogic(BaseModel):
    """Rule kinds with no evaluation semantics yet."""
    kind: Literal["business_logic", "cross_module"]
    fields: Any = None


RuleLogic = Annotated[
    Union[FormatLogic, RangeLogic, DependencyLogic, UnimplementedLogic],
    Field(discriminator="kind"),
]

_rule_logic_adapter = TypeAdapter(RuleLogic)


def parse_rule_logic(rule_type: Union[ValidationRuleType, str], payload: Any) -> RuleLogic:
    """
    Parse a rule's ``validation_logic`` payload.

    Raises:
        pydantic.ValidationError: If the payload does not fit the rule type
    """
    kind = rule_type.value if isinstance(rule_type, ValidationRuleType) else str(rule_type)
    return _rule_logic_adapter.validate_python({"kind": kind, "fields": payload})


@dataclass
class RuleViolation:
    """A rule that a record failed."""
    rule: str
    message: str
    severity: str

    def to_dict(self) -> Dict[str, str]:
        return {"rule": self.rule, "message": self.message, "severity": self.severity}


@dataclass
class ValidationOutcome:
    """
    Result of evaluating a record against a rule set.

    ``unimplemented`` names the rules that were skipped because their kind
    has no evaluation semantics; they never add violations.
    """
    violations: List[RuleViolation] = field(default_factory=list)
    unimplemented: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> List[str]:
        return [violation.message for violation in self.violations]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violations": [violation.to_dict() for violation in self.violations],
            "unimplemented": list(self.unimplemented),
        }


class ValidationRuleEvaluator:
    """
    Applies validation rules to a record.

    A rule whose evaluation raises (bad payload, bad pattern) is reported as
    a violation and the remaining rules still run.
    """

    def applicable_rules(
        self, rules: Iterable[DataValidationRule], table_name: str
    ) -> List[DataValidationRule]:
        return [rule for rule in rules if rule.is_active and rule.applies_to(table_name)]

    def evaluate(
        self,
        record: Dict[str, Any],
        rules: Iterable[DataValidationRule],
        table_name: Optional[str] = None,
    ) -> ValidationOutcome:
        """
        Evaluate ``record`` against ``rules``.

        Args:
            record: Field -> value mapping
            rules: Candidate rules
            table_name: When given, only active rules targeting this table run

        Returns:
            ValidationOutcome with one violation per failed rule, in rule order
        """
        if table_name is not None:
            rules = self.applicable_rules(rules, table_name)

        outcome = ValidationOutcome()
        for rule in rules:
            try:
                logic = parse_rule_logic(rule.rule_type, rule.validation_logic)
                if isinstance(logic, UnimplementedLogic):
                    outcome.unimplemented.append(rule.rule_name)
                    continue
                passed = self.check(logic, record)
            except Exception as e:
                logger.error(f"Error executing validation rule '{rule.rule_name}': {e}")
                passed = False

            if not passed:
                severity = rule.severity.value if isinstance(rule.severity, Severity) else str(rule.severity)
                outcome.violations.append(
                    RuleViolation(rule=rule.rule_name, message=rule.error_message, severity=severity)
                )

        if outcome.unimplemented:
            logger.warning(
                f"Validation rules not enforced, no evaluation semantics for their kind: "
                f"{', '.join(outcome.unimplemented)}"
            )
        return outcome

    def check(self, logic: RuleLogic, record: Dict[str, Any]) -> bool:
        if isinstance(logic, FormatLogic):
            return self._check_format(logic, record)
        if isinstance(logic, RangeLogic):
            return self._check_range(logic, record)
        if isinstance(logic, DependencyLogic):
            return self._check_dependency(logic, record)
        return True

    @staticmethod
    def _check_format(logic: FormatLogic, record: Dict[str, Any]) -> bool:
        for field_name, pattern in logic.fields.items():
            value = record.get(field_name)
            if not is_truthy(value) or not isinstance(pattern, str):
                continue
            if re.search(pattern, to_text(value)) is None:
                return False
        return True

    @staticmethod
    def _check_range(logic: RangeLogic, record: Dict[str, Any]) -> bool:
        for field_name, raw_bound in logic.fields.items():
            if field_name not in record:
                continue
            bound = RangeBound.model_validate(raw_bound)
            value = parse_float(record[field_name])
            if value is None:
                return False
            if bound.min is not None and value < bound.min:
                return False
            if bound.max is not None and value > bound.max:
                return False
        return True

    @staticmethod
    def _check_dependency(logic: DependencyLogic, record: Dict[str, Any]) -> bool:
        for condition, required_fields in logic.fields.items():
            if not is_truthy(record.get(condition)):
                continue
            if not all(is_truthy(record.get(required)) for required in required_fields):
                return False
        return True
