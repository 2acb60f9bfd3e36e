"""
Enumerations shared by the form model, the validators and navigation.
"""

from enum import Enum


class DrawType(Enum):
    """How many questions are surfaced per navigation step."""
    SINGLE_QUESTION = "single_question"
    ENTIRE_SECTION = "entire_section"
    ENTIRE_FORM = "entire_form"


class ControlKind(Enum):
    LABEL = "label"
    HTML = "html"
    TEXT = "text"
    OPTION = "option"
    OPTION_MULTI = "option_multi"
    DATE = "date"
    TIME = "time"
    DATE_TIME = "date_time"
    TELEPHONE_AND_IDD = "telephone_and_idd"
    TOGGLE = "toggle"
    SLIDER = "slider"


# Kinds that only display content and are never validated
DISPLAY_ONLY_KINDS = {ControlKind.LABEL, ControlKind.HTML}

# Kinds whose answer is a date and/or time
TEMPORAL_KINDS = {ControlKind.DATE, ControlKind.TIME, ControlKind.DATE_TIME}

OPTION_KINDS = {ControlKind.OPTION, ControlKind.OPTION_MULTI}


class TextType(Enum):
    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"
    PASSWORD = "password"
    EMAIL = "email"
    URL = "url"
    TELEPHONE_NUMBER = "telephone_number"
    POSTAL_CODE = "postal_code"
    NUMERIC = "numeric"


class DateType(Enum):
    FULL = "full"
    MONTH_YEAR = "month_year"


class LayoutStyle(Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
