"""
FormData: the answer store.

A flat mapping of field name -> string value. It is the single source of
truth for answers; it performs no validation of its own.

Observers registered with add_observer() are called synchronously, after
the new value is stored, with a FormDataChanged event.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from metaform.coercion import parse_date_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormDataChanged:
    """Published after every set_value()."""
    field_name: str
    old_value: str
    new_value: str


DataObserver = Callable[[FormDataChanged], None]


class FormData:
    """
    Answer store.

    Reading a field that has never been set gives '' rather than None.
    With force_lower_case, field names are folded so 'Name' and 'name'
    are the same answer.
    """

    def __init__(self, force_lower_case: bool = False):
        self._data: Dict[str, str] = {}
        self._observers: List[DataObserver] = []
        self.force_lower_case = force_lower_case

    def _field_name(self, name: str) -> str:
        return name.lower() if self.force_lower_case else name

    def get_value(self, name: str) -> str:
        return self._data.get(self._field_name(name), "")

    def set_value(self, name: str, value: str) -> None:
        field_name = self._field_name(name)
        old_value = self._data.get(field_name, "")
        self._data[field_name] = value

        event = FormDataChanged(field_name=name, old_value=old_value, new_value=value)
        for observer in list(self._observers):
            observer(event)

    def get_value_as_date(self, name: str) -> Optional[datetime]:
        return parse_date_time(self.get_value(name))

    def get_value_as_date_time(self, name: str) -> Optional[datetime]:
        return parse_date_time(self.get_value(name), require_time=True)

    def add_observer(self, observer: DataObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: DataObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def reset(self) -> None:
        """Forget every answer. Observers are kept and are not notified."""
        logger.debug("Resetting form data (%d fields)", len(self._data))
        self._data.clear()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._data)

    def __contains__(self, name: str) -> bool:
        return self._field_name(name) in self._data

    def __len__(self) -> int:
        return len(self._data)
