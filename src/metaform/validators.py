"""
Validators

A Validator is a small tagged record: a ValidatorKind plus whichever
parameters that kind needs, and the message shown when it fails. All
synchronous checks go through the single is_valid() dispatch function.

Operands (value, min, max) use the same syntax as rule operands, so a
validator can compare against another answer ("[startDate]") or a
variable ("%TODAY"). Referenced fields are reported by
Validator.references and feed the owning control's dependency set.

REMOTE validators are not checked here; see metaform.remote.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from metaform.coercion import parse_date, parse_date_time, to_int
from metaform.data import FormData
from metaform.enums import OPTION_KINDS, TEMPORAL_KINDS
from metaform.references import VariableSource, referenced_fields, resolve

logger = logging.getLogger(__name__)


# AngularJS email pattern (RFC 2822 derived), matched case-insensitively
_EMAIL_PATTERN = (
    r"(?:[a-zA-Z0-9!#$%\&'*+/=?\^_`{|}~-]+(?:\.[a-zA-Z0-9!#$%\&'*+/=?\^_`{|}~-]+)*"
    r'|"(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21\x23-\x5b\x5d-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])*")'
    r"@(?:(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?"
    r"|\[(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?|[a-z0-9-]*[a-z0-9]:"
    r"(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21-\x5a\x53-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])+)\])"
)
_EMAIL_RE = re.compile(_EMAIL_PATTERN, re.IGNORECASE)


class ValidatorKind(Enum):
    REQUIRED = "Required"
    ANSWER_MUST_MATCH = "AnswerMustMatch"
    EMAIL = "Email"
    DATE = "Date"
    DATE_TIME = "DateTime"
    DATE_MUST_BE_AFTER = "MustBeAfter"
    DATE_MUST_BE_BEFORE = "MustBeBefore"
    MUST_BE_BETWEEN = "MustBeBetween"
    MINIMUM_WORD_COUNT = "MinimumWordCount"
    REMOTE = "Async"


@dataclass(frozen=True)
class Validator:
    """
    One check attached to a control.

    Properties:
        kind:               ValidatorKind
        message:            Shown when the check fails
        value:              Match / limit operand (ANSWER_MUST_MATCH, DATE_MUST_BE_*)
        min, max:           Bounds (MUST_BE_BETWEEN)
        target_word_count:  MINIMUM_WORD_COUNT
        url:                Endpoint (REMOTE)
    """

    kind: ValidatorKind
    message: str
    value: Optional[str] = None
    min: Optional[str] = None
    max: Optional[str] = None
    target_word_count: int = 0
    url: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.kind == ValidatorKind.REMOTE

    @property
    def references(self) -> List[str]:
        return referenced_fields(self.value, self.min, self.max)


# =============================================================================
# Factories
# =============================================================================

def required(message: str) -> Validator:
    return Validator(ValidatorKind.REQUIRED, message)


def answer_must_match(match: str, message: str) -> Validator:
    return Validator(ValidatorKind.ANSWER_MUST_MATCH, message, value=match)


def email(message: str) -> Validator:
    return Validator(ValidatorKind.EMAIL, message)


def date(message: str) -> Validator:
    return Validator(ValidatorKind.DATE, message)


def date_time(message: str) -> Validator:
    return Validator(ValidatorKind.DATE_TIME, message)


def date_must_be_after(minimum: str, message: str) -> Validator:
    return Validator(ValidatorKind.DATE_MUST_BE_AFTER, message, value=minimum)


def date_must_be_before(maximum: str, message: str) -> Validator:
    return Validator(ValidatorKind.DATE_MUST_BE_BEFORE, message, value=maximum)


def must_be_between(after: str, before: str, message: str) -> Validator:
    return Validator(ValidatorKind.MUST_BE_BETWEEN, message, min=after, max=before)


def minimum_word_count(count: int, message: str) -> Validator:
    return Validator(ValidatorKind.MINIMUM_WORD_COUNT, message, target_word_count=count)


def remote(url: str, message: str) -> Validator:
    return Validator(ValidatorKind.REMOTE, message, url=url)


# =============================================================================
# Synchronous checks
# =============================================================================

def is_valid(validator: Validator, control, data: FormData,
             variables: Optional[VariableSource] = None) -> bool:
    """
    Run one synchronous check for control against the current answers.

    control only needs .name, .kind and .has_option_list.
    """
    answer = data.get_value(control.name)
    kind = validator.kind

    if kind == ValidatorKind.REQUIRED:
        # An option control with nothing to choose from cannot be answered
        if control.kind in OPTION_KINDS and not control.has_option_list:
            return True
        return len(answer) > 0

    if kind == ValidatorKind.ANSWER_MUST_MATCH:
        return answer == resolve(validator.value, data, variables)

    if kind == ValidatorKind.EMAIL:
        return not answer or _EMAIL_RE.fullmatch(answer) is not None

    if kind == ValidatorKind.DATE:
        return not answer or parse_date_time(answer) is not None

    if kind == ValidatorKind.DATE_TIME:
        return not answer or parse_date_time(answer, require_time=True) is not None

    if kind in (ValidatorKind.DATE_MUST_BE_AFTER, ValidatorKind.DATE_MUST_BE_BEFORE):
        if not answer:
            return True
        checked = parse_date(answer)
        limit = parse_date(resolve(validator.value, data, variables))
        if checked is None or limit is None:
            return False
        if kind == ValidatorKind.DATE_MUST_BE_AFTER:
            return checked > limit
        return checked < limit

    if kind == ValidatorKind.MUST_BE_BETWEEN:
        if not answer:
            return True
        low = resolve(validator.min, data, variables)
        high = resolve(validator.max, data, variables)
        if control.kind in TEMPORAL_KINDS:
            return _date_in_range(answer, low, high)
        return _numeric_in_range(answer, low, high)

    if kind == ValidatorKind.MINIMUM_WORD_COUNT:
        if not answer:
            return False
        return len(answer.split()) >= validator.target_word_count

    if kind == ValidatorKind.REMOTE:
        return True

    logger.warning("Unhandled validator kind %s", kind)
    return True


def _date_in_range(answer: str, low: str, high: str) -> bool:
    checked = parse_date_time(answer)
    minimum = parse_date_time(low)
    maximum = parse_date_time(high)
    # Malformed dates are the DATE validator's job
    if checked is None or minimum is None or maximum is None:
        return True
    return minimum < checked < maximum


def _numeric_in_range(answer: str, low: str, high: str) -> bool:
    checked = to_int(answer)
    minimum = to_int(low)
    maximum = to_int(high)
    if checked is None or minimum is None or maximum is None:
        return False
    return minimum < checked < maximum
