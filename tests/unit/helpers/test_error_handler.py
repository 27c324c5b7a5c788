"""Tests for error reporting and status messages."""

from unittest.mock import MagicMock

import pytest
import typer

from cf_cli.commands.targetgroup import unlink_command
from cf_cli.helpers.error_handler import (
    CLIError,
    handle_error,
    handle_info,
    handle_success,
    handle_warning,
)
from cf_cli.helpers.iam import resolve_unique_handler_id
from conftest import ScriptedPrompter, api_response, client_error


class TestStatusMessages:
    """Test the shared status message helpers."""

    def test_markers_go_to_stderr(self, capsys):
        """Test each helper prints its marker to stderr only."""
        handle_success("done")
        handle_info("note")
        handle_warning("careful")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == ["✅ done", "ℹ️ note", "⚠️ Warning: careful"]

    def test_handle_error_exits(self, capsys):
        """Test handle_error prints the error with its info lines and exits with status 1."""
        with pytest.raises(typer.Exit) as exc_info:
            handle_error(CLIError("boom", ["try again"]))

        assert exc_info.value.exit_code == 1
        assert capsys.readouterr().err.splitlines() == ["❌ Error: boom", "   try again"]

    def test_commands_use_success_helper(self, capsys):
        """Test command success lines share the helper's format."""
        api = MagicMock()
        api.remove_target_group_link.return_value = api_response(200, {})

        unlink_command(api, "cf-handler-x", "aws")

        assert "✅ Unlinked deployment cf-handler-x from Target Group aws\n" in (
            capsys.readouterr().err
        )

    def test_invalid_handler_id_warning(self, capsys):
        """Test a rejected handler ID answer is reported as a warning."""
        iam = MagicMock()
        iam.get_role.side_effect = client_error("NoSuchEntity", "", "GetRole")

        resolve_unique_handler_id(iam, "cf_bad", ScriptedPrompter(texts=["cf-good"]))

        err = capsys.readouterr().err
        assert err.startswith("⚠️ Warning: 'cf_bad' is not a valid Handler ID")
