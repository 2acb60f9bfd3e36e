"""
Business Rules

Named boolean predicates over the answers in a FormData store. Sections
and questions name a rule to decide whether they are shown.

A BusinessRule is an ordered list of RuleParts combined with either
MatchAll (every part must pass) or MatchAny (one part is enough).
Each RulePart reads one field, coerces it together with its operand(s)
according to a forced evaluation type, and compares them.

Evaluation never raises. Unknown rule names, unparsable numbers and
unparsable dates all come out as False.
"""

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from metaform.coercion import parse_date_time, to_bool, to_int
from metaform.data import FormData
from metaform.references import VariableSource, referenced_fields, resolve

logger = logging.getLogger(__name__)


class RuleMatchType(Enum):
    MATCH_ALL = "all"
    MATCH_ANY = "any"


class RuleComparison(Enum):
    """The closed set of comparisons a rule part can make."""
    EQUALS = "=="
    NOT_EQUALS = "!="
    LESS_THAN = "<"
    GREATER_THAN = ">"
    CONTAINS = "contains"
    BETWEEN = "between"


class ForceEvaluationType(Enum):
    """How both sides of a comparison are coerced before comparing."""
    DEFAULT = "string"
    BOOL = "bool"
    NUMERIC = "numeric"
    DATE_TIME = "datetime"


@dataclass
class RulePart:
    """
    One comparison inside a rule.

    Properties:
        field_name:
            Field whose current answer is the left-hand side

        comparison:
            RuleComparison

        value:
            Right-hand operand for everything except BETWEEN.
            May be a literal, "[field]" or "%VARIABLE".

        min / max:
            Bounds for BETWEEN, same operand syntax as value

        evaluation_type:
            ForceEvaluationType; GREATER_THAN, LESS_THAN and BETWEEN
            are only meaningful for NUMERIC and DATE_TIME
    """

    field_name: str
    comparison: RuleComparison
    value: Optional[str] = None
    min: Optional[str] = None
    max: Optional[str] = None
    evaluation_type: ForceEvaluationType = ForceEvaluationType.DEFAULT

    def references(self) -> List[str]:
        """Every field this part reads, its own field first."""
        found = [self.field_name]
        for name in referenced_fields(self.value, self.min, self.max):
            if name not in found:
                found.append(name)
        return found

    def evaluate(self, data: FormData, variables: Optional[VariableSource] = None) -> bool:
        compared_value = data.get_value(self.field_name)
        logger.debug("Evaluating %r %s %r", compared_value, self.comparison.value, self.value)

        if self.comparison == RuleComparison.BETWEEN:
            return self._evaluate_between(compared_value, data, variables)

        operand = resolve(self.value, data, variables)

        if self.comparison == RuleComparison.EQUALS:
            return self._coerced_equals(compared_value, operand) is True
        if self.comparison == RuleComparison.NOT_EQUALS:
            return self._coerced_equals(compared_value, operand) is not True
        if self.comparison == RuleComparison.GREATER_THAN:
            return self._ordered(compared_value, operand, lambda a, b: a > b)
        if self.comparison == RuleComparison.LESS_THAN:
            return self._ordered(compared_value, operand, lambda a, b: a < b)
        if self.comparison == RuleComparison.CONTAINS:
            return operand in compared_value.split(",")

        return False

    def _coerce(self, value: str):
        # None means "could not be coerced"
        if self.evaluation_type == ForceEvaluationType.NUMERIC:
            return to_int(value)
        if self.evaluation_type == ForceEvaluationType.DATE_TIME:
            return parse_date_time(value)
        if self.evaluation_type == ForceEvaluationType.BOOL:
            return to_bool(value)
        return value

    def _coerced_equals(self, left: str, right: str) -> Optional[bool]:
        """True/False for equal/different, None if either side will not coerce (never equal)."""
        lhs = self._coerce(left)
        rhs = self._coerce(right)
        if lhs is None or rhs is None:
            return None
        return lhs == rhs

    def _ordered(self, left: str, right: str, compare: Callable) -> bool:
        if self.evaluation_type not in (ForceEvaluationType.NUMERIC, ForceEvaluationType.DATE_TIME):
            return False
        lhs = self._coerce(left)
        rhs = self._coerce(right)
        if lhs is None or rhs is None:
            return False
        return compare(lhs, rhs)

    def _evaluate_between(self, compared_value: str, data: FormData,
                          variables: Optional[VariableSource]) -> bool:
        if self.evaluation_type not in (ForceEvaluationType.NUMERIC, ForceEvaluationType.DATE_TIME):
            return False
        if self.min is None or self.max is None:
            return False

        value = self._coerce(compared_value)
        low = self._coerce(resolve(self.min, data, variables))
        high = self._coerce(resolve(self.max, data, variables))
        if value is None or low is None or high is None:
            return False
        return low < value < high


@dataclass
class BusinessRule:
    """A named, ordered list of rule parts combined by match_type."""

    name: str
    match_type: RuleMatchType = RuleMatchType.MATCH_ALL
    parts: List[RulePart] = field(default_factory=list)

    def add_part(self, field_name: str, comparison: RuleComparison, value: str,
                 evaluation_type: ForceEvaluationType = ForceEvaluationType.DEFAULT) -> "BusinessRule":
        self.parts.append(RulePart(
            field_name=field_name,
            comparison=comparison,
            value=value,
            evaluation_type=evaluation_type,
        ))
        return self

    def add_range_part(self, field_name: str, min: str, max: str,
                       evaluation_type: ForceEvaluationType = ForceEvaluationType.NUMERIC) -> "BusinessRule":
        self.parts.append(RulePart(
            field_name=field_name,
            comparison=RuleComparison.BETWEEN,
            min=min,
            max=max,
            evaluation_type=evaluation_type,
        ))
        return self

    def references(self) -> List[str]:
        found: List[str] = []
        for part in self.parts:
            for name in part.references():
                if name not in found:
                    found.append(name)
        return found

    def evaluate(self, data: FormData, variables: Optional[VariableSource] = None) -> bool:
        """
        MATCH_ANY stops at the first passing part, MATCH_ALL at the first
        failing one. A rule with no parts is False.
        """
        success = False
        for part in self.parts:
            success = part.evaluate(data, variables)
            if success and self.match_type == RuleMatchType.MATCH_ANY:
                return True
            if not success and self.match_type == RuleMatchType.MATCH_ALL:
                return False
        return success


class BusinessRules:
    """
    The set of rules for a form, keyed by name.

    variables is the source used for "%VARIABLE" operands in every rule.
    """

    def __init__(self, variables: Optional[VariableSource] = None):
        self.rules: Dict[str, BusinessRule] = {}
        self.variables = variables

    def add_rule(self, name: str, match_type: RuleMatchType = RuleMatchType.MATCH_ALL) -> BusinessRule:
        """Create and register a rule. A duplicate name replaces the earlier rule, with a warning."""
        if name in self.rules:
            warnings.warn(f"Rule {name} has already been added", UserWarning)
        rule = BusinessRule(name=name, match_type=match_type)
        self.rules[name] = rule
        return rule

    def get_rule(self, name: str) -> Optional[BusinessRule]:
        return self.rules.get(name)

    def evaluate_rule(self, name: str, data: FormData) -> bool:
        rule = self.rules.get(name)
        if rule is None:
            logger.debug("Rule %s was not found", name)
            return False
        logger.debug("Evaluating rule: %s", name)
        return rule.evaluate(data, self.variables)

    def __contains__(self, name: str) -> bool:
        return name in self.rules

    def __len__(self) -> int:
        return len(self.rules)
