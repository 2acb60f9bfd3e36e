"""
Example form used in tests and documentation.

Builds a small sign-up questionnaire:
    Section 1  About you     name, email, date of birth, password + confirmation
    Section 2  Employment    only when "employed" is Y; start date must be after date of birth
    Section 3  Feedback      comments of at least a few words
"""
from typing import Tuple

from metaform.enums import DrawType, TextType
from metaform.model import Form, OptionValue, Options
from metaform.rules import BusinessRules, ForceEvaluationType, RuleComparison, RuleMatchType
from metaform import validators


def build_example_rules() -> BusinessRules:
    rules = BusinessRules()
    rules.add_rule("isEmployed", RuleMatchType.MATCH_ALL).add_part(
        "employed", RuleComparison.EQUALS, "Y", ForceEvaluationType.BOOL
    )
    rules.add_rule("wantsFeedback", RuleMatchType.MATCH_ANY).add_part(
        "contactBy", RuleComparison.CONTAINS, "email"
    ).add_part(
        "contactBy", RuleComparison.CONTAINS, "phone"
    )
    return rules


def build_example_form(draw_type: DrawType = DrawType.SINGLE_QUESTION) -> Tuple[Form, BusinessRules]:
    form = Form(name="signup", title="Sign up", draw_type=draw_type)
    rules = build_example_rules()

    about = form.add_section("About you")
    employment = form.add_section("Employment", rule_to_match="isEmployed")
    feedback = form.add_section("Feedback", rule_to_match="wantsFeedback")

    form.add_question("name", "What is your name?", section_id=about.id) \
        .add_text_control("name", TextType.SINGLE_LINE, max_length=100) \
        .add_validator(validators.required("Please enter your name"))

    form.add_question("email", "What is your email address?", section_id=about.id) \
        .add_text_control("email", TextType.EMAIL) \
        .add_validator(validators.required("Please enter your email address")) \
        .add_validator(validators.email("That doesn't look like an email address"))

    form.add_question("dob", "When were you born?", section_id=about.id) \
        .add_date_control("dateOfBirth") \
        .add_validator(validators.required("Please enter your date of birth")) \
        .add_validator(validators.date("Please enter a valid date")) \
        .add_validator(validators.date_must_be_before("%TODAY", "Your date of birth must be in the past"))

    password = form.add_question("password", "Choose a password", section_id=about.id)
    password.add_text_control("password", TextType.PASSWORD) \
        .add_validator(validators.required("Please choose a password"))
    password.add_text_control("confirmPassword", TextType.PASSWORD) \
        .add_validator(validators.answer_must_match("[password]", "The passwords do not match"))

    form.add_question("employed", "Are you employed?", section_id=about.id) \
        .add_toggle_control("employed", "I am currently employed")

    form.add_question("contact", "How may we contact you?", section_id=about.id) \
        .add_option_multi_control("contactBy", Options.from_list([
            OptionValue("email", "Email"),
            OptionValue("phone", "Telephone"),
            OptionValue("post", "Post"),
        ]))

    form.add_question("employer", "Who do you work for?", section_id=employment.id,
                      rule_to_match="isEmployed") \
        .add_text_control("employer") \
        .add_validator(validators.required("Please enter your employer"))

    form.add_question("startDate", "When did you start?", section_id=employment.id,
                      rule_to_match="isEmployed") \
        .add_date_control("startDate") \
        .add_validator(validators.date("Please enter a valid date")) \
        .add_validator(validators.date_must_be_after("[dateOfBirth]",
                                                     "You can't have started before you were born"))

    form.add_question("comments", "Anything else?", section_id=feedback.id,
                      rule_to_match="wantsFeedback") \
        .add_text_control("comments", TextType.MULTI_LINE) \
        .add_validator(validators.minimum_word_count(3, "Please tell us a little more"))

    return form, rules
