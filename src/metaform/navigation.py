"""
Navigation

Works out which questions to show next, given the form's draw type, a
direction and the last position shown.

    SINGLE_QUESTION   position indexes form.questions
    ENTIRE_SECTION    position indexes form.sections
    ENTIRE_FORM       every question, every time; position unused

Hidden items (whose visibility rule evaluates False) are skipped. A rule
name that is not registered counts as no rule, so the item is shown.

at_start / at_end say whether another step back / forward would find
anything. They are worked out by looking one step past the new position
with the same scan; the look-ahead never moves the position.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from metaform.enums import DrawType
from metaform.model import Form, Question
from metaform.rules import BusinessRules

logger = logging.getLogger(__name__)

FORWARDS = 1
BACKWARDS = -1


@dataclass(frozen=True)
class DisplayQuestions:
    questions: List[Question] = field(default_factory=list)
    at_start: bool = True
    at_end: bool = True
    number_of_controls: int = 0
    last_item: int = -1


def _is_visible(rule_to_match: Optional[str], form: Form, rules: BusinessRules) -> bool:
    if rule_to_match is None or rule_to_match not in rules:
        return True
    return rules.evaluate_rule(rule_to_match, form.data)


def _scan(items: Sequence, start: int, direction: int, form: Form, rules: BusinessRules) -> Optional[int]:
    """Index of the first visible item from start onwards in direction, or None."""
    current = start
    while 0 <= current < len(items):
        if _is_visible(items[current].rule_to_match, form, rules):
            return current
        current += direction
    return None


def _boundaries(items: Sequence, position: int, form: Form, rules: BusinessRules):
    at_start = _scan(items, position + BACKWARDS, BACKWARDS, form, rules) is None
    at_end = _scan(items, position + FORWARDS, FORWARDS, form, rules) is None
    return at_start, at_end


def _count_controls(questions: List[Question]) -> int:
    return sum(len(q.controls) for q in questions)


def get_display_questions(form: Form, rules: BusinessRules, last: int, direction: int) -> DisplayQuestions:
    """
    Step from last in direction and return what should be displayed.

    last_item in the result is the new position: the item found, or last
    unchanged when nothing visible lies in that direction.
    """
    if not form.questions:
        logger.debug("No questions in form %s", form.name)
        return DisplayQuestions(questions=[], at_start=True, at_end=True,
                                number_of_controls=0, last_item=last)

    if form.draw_type == DrawType.SINGLE_QUESTION:
        return _single_question(form, rules, last, direction)
    if form.draw_type == DrawType.ENTIRE_SECTION:
        return _questions_in_section(form, rules, last, direction)
    return _questions_in_form(form, last)


def get_next_questions_to_display(form: Form, rules: BusinessRules, last: int) -> DisplayQuestions:
    return get_display_questions(form, rules, last, FORWARDS)


def get_previous_questions_to_display(form: Form, rules: BusinessRules, last: int) -> DisplayQuestions:
    return get_display_questions(form, rules, last, BACKWARDS)


def _single_question(form: Form, rules: BusinessRules, last: int, direction: int) -> DisplayQuestions:
    found = _scan(form.questions, last + direction, direction, form, rules)
    position = last if found is None else found
    questions = [] if found is None else [form.questions[found]]

    at_start, at_end = _boundaries(form.questions, position, form, rules)
    return DisplayQuestions(
        questions=questions,
        at_start=at_start,
        at_end=at_end,
        number_of_controls=_count_controls(questions),
        last_item=position,
    )


def _questions_in_section(form: Form, rules: BusinessRules, last: int, direction: int) -> DisplayQuestions:
    found = _scan(form.sections, last + direction, direction, form, rules)
    position = last if found is None else found

    questions: List[Question] = []
    if found is not None:
        section_id = form.sections[found].id
        questions = [q for q in form.questions if q.section_id == section_id]

    at_start, at_end = _boundaries(form.sections, position, form, rules)
    return DisplayQuestions(
        questions=questions,
        at_start=at_start,
        at_end=at_end,
        number_of_controls=_count_controls(questions),
        last_item=position,
    )


def _questions_in_form(form: Form, last: int) -> DisplayQuestions:
    questions = list(form.questions)
    return DisplayQuestions(
        questions=questions,
        at_start=True,
        at_end=True,
        number_of_controls=_count_controls(questions),
        last_item=last,
    )


class NavigationCursor:
    """
    The one piece of navigation state: the last position displayed, plus
    the boundary flags from the last step.

    Only advance() moves the position, and only when it finds something.
    """

    def __init__(self, form: Form, rules: BusinessRules, position: int = -1):
        self.form = form
        self.rules = rules
        self.position = position
        self.at_start = True
        self.at_end = False

    def advance(self, direction: int = FORWARDS) -> DisplayQuestions:
        result = get_display_questions(self.form, self.rules, self.position, direction)
        self.position = result.last_item
        self.at_start = result.at_start
        self.at_end = result.at_end
        logger.debug("Cursor at %d (start=%s, end=%s, %d questions)",
                     self.position, self.at_start, self.at_end, len(result.questions))
        return result

    def next(self) -> DisplayQuestions:
        return self.advance(FORWARDS)

    def previous(self) -> DisplayQuestions:
        return self.advance(BACKWARDS)

    def reset(self) -> None:
        self.position = -1
        self.at_start = True
        self.at_end = False
