"""
Form Analyzer: configuration diagnostics for authored forms.

Lightweight, read-only checks over a Form and its BusinessRules:
    - Inventory (sections, questions, controls, rules)
    - Rule names used by sections/questions but never registered
    - Field references with no control behind them
    - Questions pointing at unknown sections, sections with no questions
    - Rules with no parts (always False)
    - Dependency map (field -> controls to re-validate when it changes)

Nothing here raises or modifies the form. Problems are collected as
warnings on the report so the form stays usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from metaform.model import Form
from metaform.rules import BusinessRules


@dataclass
class FormReport:
    """Analysis report for a form."""

    form_name: str
    total_sections: int = 0
    total_questions: int = 0
    total_controls: int = 0
    total_rules: int = 0

    # Rules
    undefined_rules: Set[str] = field(default_factory=set)
    unused_rules: Set[str] = field(default_factory=set)
    empty_rules: Set[str] = field(default_factory=set)

    # Fields
    undefined_field_references: Set[str] = field(default_factory=set)
    duplicate_controls: Set[str] = field(default_factory=set)

    # Structure
    orphan_questions: List[str] = field(default_factory=list)
    empty_sections: List[int] = field(default_factory=list)

    # Coverage
    controls_with_validators: int = 0
    controls_with_async_validators: int = 0

    dependencies: Dict[str, List[str]] = field(default_factory=dict)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def ok(self) -> bool:
        return not self.warnings


def analyze_form(form: Form, rules: BusinessRules | None = None) -> FormReport:
    """
    Inspect a form (and optionally its rules) for configuration problems.

    Returns a FormReport with counts, findings and warnings.
    """
    rules = rules if rules is not None else BusinessRules()
    report = FormReport(form_name=form.name)

    controls = list(form.iter_controls())
    report.total_sections = len(form.sections)
    report.total_questions = len(form.questions)
    report.total_controls = len(controls)
    report.total_rules = len(rules)

    # =========================================================================
    # 1. RULE ANALYSIS
    # =========================================================================

    used_rules: Set[str] = set()
    for section in form.sections:
        if section.rule_to_match:
            used_rules.add(section.rule_to_match)
    for question in form.questions:
        if question.rule_to_match:
            used_rules.add(question.rule_to_match)

    registered = set(rules.rules.keys())
    report.undefined_rules = used_rules - registered
    report.unused_rules = registered - used_rules
    report.empty_rules = {name for name, rule in rules.rules.items() if not rule.parts}

    # =========================================================================
    # 2. FIELD ANALYSIS
    # =========================================================================

    control_names: Set[str] = set()
    for control in controls:
        if control.name in control_names:
            report.duplicate_controls.add(control.name)
        control_names.add(control.name)

        if control.validators:
            report.controls_with_validators += 1
        if control.async_validators:
            report.controls_with_async_validators += 1

    referenced: Set[str] = set()
    for control in controls:
        referenced.update(control.references)
        referenced.update(control.url_field_references())
    for name in used_rules & registered:
        referenced.update(rules.rules[name].references())

    report.undefined_field_references = referenced - control_names

    dependencies: Dict[str, Set[str]] = {}
    for control in controls:
        for name in control.references:
            if name in control_names and name != control.name:
                dependencies.setdefault(name, set()).add(control.name)
    report.dependencies = {k: sorted(v) for k, v in sorted(dependencies.items())}

    # =========================================================================
    # 3. STRUCTURE
    # =========================================================================

    section_ids = {s.id for s in form.sections}
    for question in form.questions:
        if question.section_id is not None and question.section_id not in section_ids:
            report.orphan_questions.append(question.name)

    used_sections = {q.section_id for q in form.questions}
    for section in form.sections:
        if section.id not in used_sections:
            report.empty_sections.append(section.id)

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if report.undefined_rules:
        report.add_warning(
            f"Undefined rules (treated as always visible): {', '.join(sorted(report.undefined_rules))}"
        )

    if report.empty_rules:
        report.add_warning(
            f"Rules with no parts (always false): {', '.join(sorted(report.empty_rules))}"
        )

    if report.undefined_field_references:
        report.add_warning(
            f"References to fields with no control: {', '.join(sorted(report.undefined_field_references))}"
        )

    if report.duplicate_controls:
        report.add_warning(
            f"Duplicate control names: {', '.join(sorted(report.duplicate_controls))}"
        )

    if report.orphan_questions:
        report.add_warning(
            f"Questions in unknown sections: {', '.join(report.orphan_questions)}"
        )

    if report.empty_sections:
        report.add_warning(
            f"Sections with no questions: {', '.join(str(s) for s in report.empty_sections)}"
        )

    return report
