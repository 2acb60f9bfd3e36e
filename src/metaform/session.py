"""
FormSession: what a UI binding layer talks to.

The whole public surface is:
    get_value / set_value            read and write answers
    check_validity(field)            validity, message, dependent fields
    get_questions_to_display(...)    navigate and get what to show

A session owns the navigation cursor and mirrors, for the questions on
screen, each control's answer, validity and error message. Writing an
answer stores it first, then validates that field and, transitively,
every field recorded as depending on it.
"""

import logging
import threading
from typing import Dict, List, Optional, Set

import httpx

from metaform.config import EngineSettings
from metaform.data import DataObserver
from metaform.model import ControlValidityChanged, Form, Question, ValidityObserver, ValidityResult
from metaform.navigation import BACKWARDS, FORWARDS, DisplayQuestions, NavigationCursor
from metaform.references import BuiltinVariableSource
from metaform.remote import AsyncValidationRunner, RemoteValidationClient
from metaform.rules import BusinessRules

logger = logging.getLogger(__name__)


class FormSession:
    """
    One user's pass through a form.

    settings tune the engine (see metaform.config); http_client lets the
    host supply its own httpx.Client for remote validation.
    """

    def __init__(self, form: Form, rules: Optional[BusinessRules] = None,
                 settings: Optional[EngineSettings] = None,
                 http_client: Optional[httpx.Client] = None):
        self.form = form
        self.rules = rules if rules is not None else BusinessRules()
        self.settings = settings if settings is not None else EngineSettings()

        form.data.force_lower_case = self.settings.force_lower_case
        if self.settings.variables:
            form.variables = BuiltinVariableSource(self.settings.variables)
        if self.rules.variables is None:
            self.rules.variables = form.variables

        self._owns_runner = not form.has_async_runner
        if self._owns_runner:
            client = RemoteValidationClient(client=http_client, timeout=self.settings.async_timeout)
            form.async_runner = AsyncValidationRunner(client, max_workers=self.settings.async_workers)

        form.initialise(self.rules)

        self.cursor = NavigationCursor(form, self.rules)
        self.display_questions: List[Question] = []
        self.data: Dict[str, str] = {}
        self.validity: Dict[str, bool] = {}
        self.errors: Dict[str, str] = {}
        self._mirror_lock = threading.RLock()

        form.add_validity_observer(self._on_validity_changed)

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def get_value(self, name: str) -> str:
        return self.form.get_value(name)

    def set_value(self, name: str, value: str) -> List[str]:
        """
        Store an answer, then validate it and its dependants. Returns the
        fields validated. An answer with no control of its own is not
        validated itself, but the controls depending on it are.
        """
        if name in self.data:
            self.data[name] = value
        self.form.set_value(name, value)
        return self.validate(name)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def check_validity(self, name: str) -> ValidityResult:
        return self.form.check_validity(name)

    def validate(self, name: str) -> List[str]:
        """
        Validate name, then every field depending on it, recursively.

        Each field is validated at most once per call, so mutually
        dependent fields do not loop.
        """
        validated: List[str] = []
        seen: Set[str] = set()
        if self.form.get_control(name) is not None:
            pending = [name]
        else:
            pending = self.form.dependants_of(name)
        while pending:
            current = pending.pop(0)
            if current in seen:
                continue
            seen.add(current)

            result = self.form.check_validity(current)
            logger.debug("Checking validity on %s: %s", current, result)
            self._mirror(current)
            validated.append(current)

            pending.extend(f for f in result.dependent_fields if f not in seen)
        return validated

    @property
    def in_error(self) -> bool:
        """True if any control on screen is currently invalid."""
        with self._mirror_lock:
            return any(not self.validity.get(control.name, True)
                       for question in self.display_questions
                       for control in question.controls)

    def _mirror(self, name: str) -> None:
        # Remote verdicts update the control too, so it is the source of truth
        control = self.form.get_control(name)
        with self._mirror_lock:
            self.validity[name] = not control.in_error
            self.errors[name] = control.error_message or ""

    def _on_validity_changed(self, event: ControlValidityChanged) -> None:
        # Remote results arrive here from a worker thread
        if event.control_name not in self.validity:
            return
        self._mirror(event.control_name)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    @property
    def at_start(self) -> bool:
        return self.cursor.at_start

    @property
    def at_end(self) -> bool:
        return self.cursor.at_end

    def get_questions_to_display(self, forwards: bool = True) -> DisplayQuestions:
        """
        Move to the next (or previous) visible question(s) and refresh the
        displayed answers, validity and errors for their controls.
        """
        result = self.cursor.advance(FORWARDS if forwards else BACKWARDS)

        self.display_questions = list(result.questions)
        self.data.clear()
        self.errors.clear()
        self.validity.clear()

        for question in result.questions:
            for control in question.controls:
                self.data[control.name] = self.form.get_value(control.name)
                self.form.check_validity(control.name)
                self._mirror(control.name)

        return result

    # -------------------------------------------------------------------------
    # Observers and lifetime
    # -------------------------------------------------------------------------

    def on_data_changed(self, observer: DataObserver) -> None:
        self.form.data.add_observer(observer)

    def on_validity_changed(self, observer: ValidityObserver) -> None:
        self.form.add_validity_observer(observer)

    def wait_for_remote_checks(self, timeout: Optional[float] = None) -> bool:
        if not self.form.has_async_runner:
            return True
        return self.form.async_runner.wait(timeout)

    def close(self) -> None:
        self.form.remove_validity_observer(self._on_validity_changed)
        if self._owns_runner and self.form.has_async_runner:
            self.form.async_runner.close()
            self.form.async_runner = None

    def __enter__(self) -> "FormSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
