"""Unit tests for the SQLite client's pure helpers."""

from datetime import UTC, date, datetime

import pytest

from src.core import db_client


@pytest.mark.unit
class TestParseFilter:
    """Tests for parse_filter function."""

    def test_empty_filter(self):
        assert db_client.parse_filter("") == ("", [])

    def test_single_equality(self):
        clause, params = db_client.parse_filter('name = "Kitchen"')

        assert clause == "name = ?"
        assert params == ["Kitchen"]

    def test_and_chain_with_typed_values(self):
        clause, params = db_client.parse_filter(
            'task_id = "12" && completed_on = "2026-10-14" && is_seasonal = "false"'
        )

        assert clause == "task_id = ? AND completed_on = ? AND is_seasonal = ?"
        assert params == [12, "2026-10-14", False]

    def test_not_equal_and_ordering_operators(self):
        clause, params = db_client.parse_filter("role != 'child' && effort >= '3'")

        assert clause == "role != ? AND effort >= ?"
        assert params == ["child", 3]

    def test_like_escapes_wildcards(self):
        clause, params = db_client.parse_filter('name ~ "50%_off"')

        assert clause == "name LIKE ? ESCAPE '\\'"
        assert params == ["%50\\%\\_off%"]

    def test_float_value(self):
        _, params = db_client.parse_filter('frequency_days = "0.5"')

        assert params == [0.5]

    def test_invalid_syntax_raises(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            db_client.parse_filter("name is Kitchen")


@pytest.mark.unit
class TestValueConversion:
    """Tests for value binding and record conversion helpers."""

    def test_sanitize_param_escapes_quotes(self):
        assert db_client.sanitize_param('say "hi"') == 'say \\"hi\\"'

    def test_sanitize_param_stringifies(self):
        assert db_client.sanitize_param(42) == "42"

    def test_dates_bound_as_iso(self):
        moment = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)

        assert db_client._to_db_value(moment) == "2026-10-14T12:00:00+00:00"
        assert db_client._to_db_value(date(2026, 10, 14)) == "2026-10-14"

    def test_json_values_serialised(self):
        assert db_client._to_db_value({"1": 5}) == '{"1": 5}'
        assert db_client._to_db_value([1, 2]) == "[1, 2]"

    def test_scalars_untouched(self):
        assert db_client._to_db_value(7) == 7
        assert db_client._to_db_value(None) is None

    def test_ids_converted_to_strings(self):
        converted = db_client._convert_record_ids({"id": 3, "room_id": 9, "effort": 2, "is_seasonal": True})

        assert converted == {"id": "3", "room_id": "9", "effort": 2, "is_seasonal": True}

    def test_invalid_collection_name(self):
        with pytest.raises(ValueError, match="Invalid collection name"):
            db_client._validate_collection_name("tasks; DROP TABLE users")

    def test_non_numeric_record_id_not_found(self):
        with pytest.raises(db_client.RecordNotFoundError):
            db_client._record_key("tasks", "abc")
