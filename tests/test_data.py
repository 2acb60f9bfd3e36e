"""
Tests for the FormData answer store.
"""

from datetime import datetime

from metaform.data import FormData, FormDataChanged


class TestFormData:
    """Test reading and writing answers."""

    def test_missing_value_is_empty_string(self):
        """Unset fields read as '' and never None."""
        data = FormData()
        assert data.get_value("anything") == ""

    def test_set_and_get(self):
        """Should store and overwrite values."""
        data = FormData()
        data.set_value("name", "Ada")
        data.set_value("name", "Grace")
        assert data.get_value("name") == "Grace"
        assert "name" in data
        assert len(data) == 1

    def test_force_lower_case(self):
        """Field names fold when force_lower_case is set."""
        data = FormData(force_lower_case=True)
        data.set_value("Name", "Ada")
        assert data.get_value("name") == "Ada"
        assert data.get_value("NAME") == "Ada"

    def test_reset(self):
        """reset() forgets every answer."""
        data = FormData()
        data.set_value("a", "1")
        data.reset()
        assert data.get_value("a") == ""
        assert data.as_dict() == {}

    def test_dates(self):
        """Should parse stored values as dates on demand."""
        data = FormData()
        data.set_value("when", "2020-05-17 14:45")
        assert data.get_value_as_date("when") == datetime(2020, 5, 17, 14, 45)
        assert data.get_value_as_date_time("when") == datetime(2020, 5, 17, 14, 45)
        data.set_value("day", "2020-05-17")
        assert data.get_value_as_date_time("day") is None


class TestObservers:
    """Test change notification."""

    def test_change_event(self):
        """Observers see old and new values after the write."""
        data = FormData()
        seen = []

        def observer(event):
            # The new value is already visible when notified
            seen.append((event, data.get_value(event.field_name)))

        data.add_observer(observer)
        data.set_value("age", "30")
        data.set_value("age", "31")

        assert seen[0] == (FormDataChanged("age", "", "30"), "30")
        assert seen[1] == (FormDataChanged("age", "30", "31"), "31")

    def test_remove_observer(self):
        """Removed observers stop receiving events."""
        data = FormData()
        seen = []
        data.add_observer(seen.append)
        data.remove_observer(seen.append)
        data.set_value("x", "1")
        assert seen == []
