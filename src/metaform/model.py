"""
Form Model

The authored structure of a questionnaire:
    - Form (root container, owns the answers)
    - Sections (ordered groups of questions)
    - Questions (ordered, each belongs to a section)
    - Controls (input widgets inside a question)

Visibility is decided elsewhere (rules + navigation). This module owns the
per-control validation pipeline and the dependency graph that tells the
host which other controls to re-check when an answer changes.

DEPENDENCY GRAPH:
    A control "references" every field its validators, its option URL, or
    the rules gating its question/section read. Form.initialise() inverts
    that into a field -> dependant controls index, keyed by field name
    whether or not the field has a control of its own, and mirrors it onto
    each referenced control's is_referenced_by set. It is built once,
    after authoring, and not recomputed per evaluation.
"""

import logging
import threading
import warnings
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Set

from metaform.coercion import (
    MONTH_NAMES,
    get_day_from,
    get_date_part,
    get_month_from,
    get_year_from,
    split_part,
)
from metaform.data import FormData
from metaform.enums import (
    DISPLAY_ONLY_KINDS,
    ControlKind,
    DateType,
    DrawType,
    LayoutStyle,
    TextType,
)
from metaform.references import (
    BuiltinVariableSource,
    VariableSource,
    field_reference,
)
from metaform.remote import AsyncValidationRunner
from metaform.validators import Validator, is_valid

logger = logging.getLogger(__name__)


class UnknownControlError(KeyError):
    """Raised when validity is requested for a field that has no control."""
    pass


@dataclass(frozen=True)
class OptionValue:
    code: str
    description: str


@dataclass
class Options:
    """
    Choices for an option control: a fixed list, or a URL to fetch them from.

    URL path segments may be field references, e.g.
        https://example.com/api/[country]/cities
    """

    list: Optional[List[OptionValue]] = None
    url: Optional[str] = None
    empty_item: Optional[str] = None
    expand_options: bool = False

    @classmethod
    def from_list(cls, options: List[OptionValue], empty_item: Optional[str] = None,
                  expand_options: bool = False) -> "Options":
        return cls(list=list(options), empty_item=empty_item, expand_options=expand_options)

    @classmethod
    def from_url(cls, url: str, empty_item: Optional[str] = None,
                 expand_options: bool = False) -> "Options":
        return cls(url=url, empty_item=empty_item, expand_options=expand_options)


@dataclass(frozen=True)
class ControlValidityChanged:
    """Published to Form validity observers when a control's state changes."""
    control_name: str
    validator: str
    is_valid: bool


ValidityObserver = Callable[[ControlValidityChanged], None]


@dataclass(frozen=True)
class ValidityResult:
    is_valid: bool
    message: Optional[str] = None
    dependent_fields: List[str] = field(default_factory=list)


@dataclass
class Control:
    """
    One input inside a question.

    The answer for a control is stored in FormData under its name. kind
    selects which of the kind-specific properties below are meaningful;
    the rest stay at their defaults.

    Runtime state is limited to in_error and error_message.
    """

    name: str
    kind: ControlKind
    question_name: str
    label: Optional[str] = None
    readonly: bool = False

    validators: List[Validator] = field(default_factory=list)
    async_validators: List[Validator] = field(default_factory=list)

    # Dependency graph, see Form.initialise()
    references: List[str] = field(default_factory=list)
    is_referenced_by: Set[str] = field(default_factory=set)

    in_error: bool = False
    error_message: Optional[str] = None

    # Kind-specific
    text: Optional[str] = None
    html: Optional[str] = None
    text_type: Optional[TextType] = None
    max_length: int = 0
    placeholder: Optional[str] = None
    options: Optional[Options] = None
    option_layout: LayoutStyle = LayoutStyle.VERTICAL
    date_type: Optional[DateType] = None
    minute_step: int = 1
    hour_start: int = 0
    hour_end: int = 23
    min: int = 0
    max: int = 0
    step: int = 1

    @property
    def control_id(self) -> str:
        return f"{self.question_name}:{self.name}"

    @property
    def is_display_only(self) -> bool:
        return self.kind in DISPLAY_ONLY_KINDS

    def add_label(self, label: str) -> "Control":
        self.label = label
        return self

    def add_validator(self, validator: Validator) -> "Control":
        """Attach a validator; REMOTE validators join the asynchronous chain."""
        if validator.is_remote:
            self.async_validators.append(validator)
        else:
            self.validators.append(validator)
        self._add_references(validator.references)
        return self

    def _add_references(self, names: List[str]) -> None:
        for name in names:
            if name not in self.references:
                self.references.append(name)

    def add_referenced_by(self, control_name: str) -> None:
        self.is_referenced_by.add(control_name)

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    @property
    def has_option_list(self) -> bool:
        return bool(self.options and self.options.list)

    @property
    def has_url(self) -> bool:
        return bool(self.options and self.options.url)

    @property
    def option_list(self) -> List[OptionValue]:
        if self.options is None or self.options.list is None:
            return []
        return self.options.list

    def url_field_references(self) -> List[str]:
        """Fields named in the option URL's path (segments after the host)."""
        found: List[str] = []
        if not self.has_url:
            return found
        segments = [s for s in self.options.url.split("/") if s]
        for segment in segments[2:]:
            name = field_reference(segment)
            if name is not None and name not in found:
                found.append(name)
        return found

    def url_for_service(self, data: FormData) -> Optional[str]:
        """
        The option URL with field references filled in from data.

        None if there is no URL or a referenced field has no answer yet.
        """
        if not self.has_url:
            return None
        base_url = self.options.url
        if "[" not in base_url:
            return base_url

        segments = [s for s in base_url.split("/") if s]
        if len(segments) < 2:
            return base_url

        parts = []
        for segment in segments[2:]:
            name = field_reference(segment)
            if name is None:
                parts.append(segment)
                continue
            value = data.get_value(name)
            if not value:
                logger.debug("Value %s wasn't found for %s", name, self.control_id)
                return None
            parts.append(value)

        return f"{segments[0]}//{segments[1]}/" + "/".join(parts)

    # -------------------------------------------------------------------------
    # Date / time / telephone helpers
    # -------------------------------------------------------------------------

    def get_day(self, data: FormData) -> str:
        return get_day_from(get_date_part(data.get_value(self.name)))

    def get_month(self, data: FormData) -> str:
        return get_month_from(get_date_part(data.get_value(self.name)))

    def get_year(self, data: FormData) -> str:
        return get_year_from(get_date_part(data.get_value(self.name)))

    @staticmethod
    def month_names() -> List[str]:
        return list(MONTH_NAMES)

    def hour_list(self) -> List[str]:
        return [f"{h:02d}" for h in range(self.hour_start, self.hour_end)]

    def minute_list(self) -> List[str]:
        step = self.minute_step
        if step < 1 or step > 59:
            step = 1
        return [f"{m:02d}" for m in range(0, 60, step)]

    def get_idd(self, data: FormData) -> str:
        return split_part(data.get_value(self.name), ":", 0)

    def get_number(self, data: FormData) -> str:
        return split_part(data.get_value(self.name), ":", 1)


@dataclass
class Question:
    """
    A question: caption, owning section, optional visibility rule, controls.

    The add_* helpers create a control of the given kind, append it and
    return it so validators can be chained on.
    """

    name: str
    caption: Optional[str] = None
    section_id: Optional[int] = None
    rule_to_match: Optional[str] = None
    controls: List[Control] = field(default_factory=list)

    def _add(self, name: str, kind: ControlKind, **kwargs) -> Control:
        control = Control(name=name, kind=kind, question_name=self.name, **kwargs)
        self.controls.append(control)
        return control

    def add_label(self, name: str, text: str) -> Control:
        return self._add(name, ControlKind.LABEL, text=text)

    def add_html(self, name: str, html: str) -> Control:
        return self._add(name, ControlKind.HTML, html=html)

    def add_text_control(self, name: str, text_type: TextType = TextType.SINGLE_LINE,
                         max_length: int = 0, placeholder: Optional[str] = None) -> Control:
        return self._add(name, ControlKind.TEXT, text_type=text_type,
                         max_length=max_length, placeholder=placeholder)

    def add_option_control(self, name: str, options: Options,
                           layout: LayoutStyle = LayoutStyle.VERTICAL) -> Control:
        return self._add(name, ControlKind.OPTION, options=options, option_layout=layout)

    def add_option_multi_control(self, name: str, options: Options,
                                 layout: LayoutStyle = LayoutStyle.VERTICAL) -> Control:
        return self._add(name, ControlKind.OPTION_MULTI, options=options, option_layout=layout)

    def add_date_control(self, name: str, date_type: DateType = DateType.FULL) -> Control:
        return self._add(name, ControlKind.DATE, date_type=date_type)

    def add_time_control(self, name: str, minute_step: int = 1,
                         hour_start: int = 0, hour_end: int = 23) -> Control:
        return self._add(name, ControlKind.TIME, minute_step=minute_step,
                         hour_start=hour_start, hour_end=hour_end)

    def add_date_time_control(self, name: str, minute_step: int = 1,
                              hour_start: int = 0, hour_end: int = 23) -> Control:
        return self._add(name, ControlKind.DATE_TIME, date_type=DateType.FULL,
                         minute_step=minute_step, hour_start=hour_start, hour_end=hour_end)

    def add_telephone_and_idd_control(self, name: str, max_length: int = 0,
                                      placeholder: Optional[str] = None) -> Control:
        return self._add(name, ControlKind.TELEPHONE_AND_IDD,
                         max_length=max_length, placeholder=placeholder)

    def add_toggle_control(self, name: str, text: Optional[str] = None) -> Control:
        return self._add(name, ControlKind.TOGGLE, text=text)

    def add_slider_control(self, name: str, min: int, max: int, step: int = 1,
                           text: Optional[str] = None) -> Control:
        return self._add(name, ControlKind.SLIDER, min=min, max=max, step=step, text=text or "")


@dataclass
class Section:
    id: int
    title: Optional[str] = None
    rule_to_match: Optional[str] = None


class Form:
    """
    Root container for a questionnaire and its answers.

    INVARIANTS:
        - Question.section_id names an existing Section (or sections are unused)
        - Control names are unique across the form
        - initialise() runs after authoring, before validation
    """

    def __init__(self, name: str, title: Optional[str] = None,
                 draw_type: DrawType = DrawType.SINGLE_QUESTION,
                 data: Optional[FormData] = None,
                 variables: Optional[VariableSource] = None,
                 async_runner: Optional[AsyncValidationRunner] = None):
        self.name = name
        self.title = title
        self.draw_type = draw_type
        self.sections: List[Section] = []
        self.questions: List[Question] = []
        self.data = data if data is not None else FormData()
        self.variables = variables if variables is not None else BuiltinVariableSource()
        self._async_runner = async_runner
        self._controls: Dict[str, Control] = {}
        self._dependants: Dict[str, Set[str]] = {}
        self._initialised = False
        self._validity_observers: List[ValidityObserver] = []
        self._state_lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Authoring
    # -------------------------------------------------------------------------

    def add_section(self, title: Optional[str] = None, rule_to_match: Optional[str] = None,
                    id: Optional[int] = None) -> Section:
        if id is None:
            id = len(self.sections) + 1
        if self.get_section(id) is not None:
            warnings.warn(f"Section {id} has already been added", UserWarning)
        section = Section(id=id, title=title, rule_to_match=rule_to_match)
        self.sections.append(section)
        return section

    def add_question(self, name: str, caption: Optional[str] = None,
                     section_id: Optional[int] = None,
                     rule_to_match: Optional[str] = None) -> Question:
        if section_id is not None and self.get_section(section_id) is None:
            warnings.warn(f"Question {name} names unknown section {section_id}", UserWarning)
        question = Question(name=name, caption=caption, section_id=section_id,
                            rule_to_match=rule_to_match)
        self.questions.append(question)
        self._initialised = False
        return question

    def get_section(self, section_id: int) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def get_question(self, name: str) -> Optional[Question]:
        for question in self.questions:
            if question.name == name:
                return question
        return None

    def iter_controls(self) -> Iterator[Control]:
        for question in self.questions:
            yield from question.controls

    def get_control(self, name: str) -> Optional[Control]:
        if not self._initialised:
            self.initialise()
        return self._controls.get(name)

    def dependants_of(self, field_name: str) -> List[str]:
        """Controls to re-validate when field_name changes, control or not."""
        if not self._initialised:
            self.initialise()
        return sorted(self._dependants.get(field_name, ()))

    def initialise(self, rules=None) -> None:
        """
        Register controls and build the dependency graph.

        With rules, fields read by the rule gating a question or its section
        also count as references of that question's controls.
        """
        self._controls = {}
        for control in self.iter_controls():
            if control.name in self._controls:
                warnings.warn(f"Control {control.name} has already been added", UserWarning)
            self._controls[control.name] = control
            control.is_referenced_by.clear()

        for question in self.questions:
            gating: List[str] = []
            if rules is not None:
                gating = self._rule_references(question, rules)
            for control in question.controls:
                control._add_references(control.url_field_references())
                for name in gating:
                    if name != control.name:
                        control._add_references([name])

        self._dependants = {}
        for control in self._controls.values():
            for name in control.references:
                self._dependants.setdefault(name, set()).add(control.name)
                referenced = self._controls.get(name)
                if referenced is None:
                    # Still indexed: answers without a control can drive rules
                    warnings.warn(
                        f"Control {control.control_id} references field {name}, which has no control",
                        UserWarning,
                    )
                    continue
                referenced.add_referenced_by(control.name)

        self._initialised = True
        logger.debug("Initialised form %s with %d controls", self.name, len(self._controls))

    def _rule_references(self, question: Question, rules) -> List[str]:
        names: List[str] = []
        rule_names = [question.rule_to_match]
        if question.section_id is not None:
            section = self.get_section(question.section_id)
            if section is not None:
                rule_names.append(section.rule_to_match)
        for rule_name in rule_names:
            if rule_name is None:
                continue
            rule = rules.get_rule(rule_name)
            if rule is None:
                continue
            for name in rule.references():
                if name not in names:
                    names.append(name)
        return names

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def get_value(self, name: str) -> str:
        return self.data.get_value(name)

    def set_value(self, name: str, value: str) -> None:
        self.data.set_value(name, value)

    def reset(self) -> None:
        """Clear every answer and every control's error state."""
        self.data.reset()
        with self._state_lock:
            for control in self.iter_controls():
                control.in_error = False
                control.error_message = None

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @property
    def async_runner(self) -> Optional[AsyncValidationRunner]:
        """
        Runs remote checks. Never created implicitly: a FormSession supplies
        one (and closes it), or the host passes its own to the constructor.
        Without a runner, remote validators are skipped.
        """
        return self._async_runner

    @async_runner.setter
    def async_runner(self, runner: Optional[AsyncValidationRunner]) -> None:
        self._async_runner = runner

    @property
    def has_async_runner(self) -> bool:
        return self._async_runner is not None

    def add_validity_observer(self, observer: ValidityObserver) -> None:
        self._validity_observers.append(observer)

    def remove_validity_observer(self, observer: ValidityObserver) -> None:
        if observer in self._validity_observers:
            self._validity_observers.remove(observer)

    def _publish(self, event: ControlValidityChanged) -> None:
        for observer in list(self._validity_observers):
            observer(event)

    def check_validity(self, name: str) -> ValidityResult:
        """
        Run the synchronous chain for the named control.

        The first failing validator stops the chain and supplies the
        message. When every synchronous check passes, the control's
        asynchronous validators are started; their results arrive later
        through validity observers.

        Raises UnknownControlError if no control has this name.
        """
        control = self.get_control(name)
        if control is None:
            raise UnknownControlError(name)

        dependent_fields = sorted(control.is_referenced_by)
        if control.is_display_only:
            return ValidityResult(is_valid=True, dependent_fields=dependent_fields)

        failed: Optional[Validator] = None
        for validator in control.validators:
            if not is_valid(validator, control, self.data, self.variables):
                failed = validator
                break

        with self._state_lock:
            was_in_error = control.in_error
            control.in_error = failed is not None
            control.error_message = failed.message if failed is not None else None

        if failed is not None:
            self._publish(ControlValidityChanged(control.name, failed.kind.value, False))
            return ValidityResult(is_valid=False, message=failed.message,
                                  dependent_fields=dependent_fields)

        if was_in_error:
            self._publish(ControlValidityChanged(control.name, "", True))
        self._check_validity_async(control)
        return ValidityResult(is_valid=True, dependent_fields=dependent_fields)

    def _check_validity_async(self, control: Control) -> None:
        if not control.async_validators:
            return
        runner = self._async_runner
        if runner is None:
            logger.warning("No runner for remote checks on %s, skipping %d validator(s)",
                           control.control_id, len(control.async_validators))
            return
        value = self.data.get_value(control.name)
        for index, validator in enumerate(control.async_validators):
            logger.debug("Validating %s asynchronously with %s", control.control_id, validator.url)
            runner.submit(
                (control.control_id, index),
                validator.url,
                value,
                self._async_result_handler(control, validator),
            )

    def _async_result_handler(self, control: Control, validator: Validator) -> Callable[[bool], None]:
        def apply(valid: bool) -> None:
            with self._state_lock:
                control.in_error = not valid
                control.error_message = None if valid else validator.message
            self._publish(ControlValidityChanged(control.name, validator.kind.value, valid))
        return apply
