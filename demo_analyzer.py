"""
Demo: Analyze the example sign-up form, then walk through it section by section.
"""

from metaform.analyzer import analyze_form
from metaform.enums import DrawType
from metaform.examples import build_example_form
from metaform.session import FormSession


def print_report(report):
    """Pretty-print a FormReport."""
    print()
    print("=" * 70)
    print(f"FORM ANALYSIS REPORT: {report.form_name}")
    print("=" * 70)
    print()

    print("📊 BASIC METRICS")
    print(f"  Sections:              {report.total_sections}")
    print(f"  Questions:             {report.total_questions}")
    print(f"  Controls:              {report.total_controls}")
    print(f"  Rules:                 {report.total_rules}")
    print()

    print("📈 RULES")
    print(f"  Undefined:             {sorted(report.undefined_rules) or 'None'}")
    print(f"  Unused:                {sorted(report.unused_rules) or 'None'}")
    print(f"  Without parts:         {sorted(report.empty_rules) or 'None'}")
    print()

    print("🔗 DEPENDENCIES")
    for name, dependants in report.dependencies.items():
        print(f"  {name} -> {', '.join(dependants)}")
    print()

    print("✅ COVERAGE")
    print(f"  With validators:       {report.controls_with_validators}/{report.total_controls}")
    print(f"  With remote checks:    {report.controls_with_async_validators}/{report.total_controls}")
    print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Form looks clean!")
    print()


def walk(session):
    """Answer a few questions and show what each step displays."""
    answers = {
        "name": "Ada",
        "email": "ada@example.com",
        "dateOfBirth": "1990-12-10",
        "employed": "Y",
        "contactBy": "email",
    }
    step = 1
    while True:
        result = session.get_questions_to_display()
        if not result.questions:
            break
        print(f"Step {step}: {[q.name for q in result.questions]}")
        for question in result.questions:
            for control in question.controls:
                if control.name in answers:
                    session.set_value(control.name, answers[control.name])
        for name, valid in session.validity.items():
            if not valid:
                print(f"    {name}: {session.errors[name]}")
        if session.at_end:
            break
        step += 1


if __name__ == "__main__":
    form, rules = build_example_form(DrawType.ENTIRE_SECTION)
    print_report(analyze_form(form, rules))

    with FormSession(form, rules) as session:
        walk(session)
