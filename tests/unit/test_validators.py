"""
Validation and T-SQL quoting helpers.
"""

import pytest

from sqlmi_migrate.utils import (
    quote_identifier,
    quote_literal,
    validate_container_name,
    validate_database_name,
)


class TestQuoting:
    def test_quote_identifier_escapes_closing_bracket(self):
        assert quote_identifier("Sales]DB") == "[Sales]]DB]"

    def test_quote_literal_doubles_quotes(self):
        assert quote_literal("O'Brien") == "N'O''Brien'"


class TestValidateDatabaseName:
    @pytest.mark.parametrize("name", ["Sales", "Sales DB", "sales-2024"])
    def test_valid(self, name):
        assert validate_database_name(name) == (True, None)

    @pytest.mark.parametrize("name", ["", "   ", "master", "MSDB", "x" * 129, "bad\nname"])
    def test_invalid(self, name):
        valid, error = validate_database_name(name)
        assert not valid
        assert error


class TestValidateContainerName:
    @pytest.mark.parametrize("name", ["migration-backups", "abc", "a1-b2"])
    def test_valid(self, name):
        assert validate_container_name(name) == (True, None)

    @pytest.mark.parametrize("name", ["", "ab", "Upper", "double--hyphen", "-leading", "trailing-"])
    def test_invalid(self, name):
        valid, _ = validate_container_name(name)
        assert not valid
