import pytest

from containerrebuild.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("server_not_found", address="10.0.0.1")

    assert "The server 10.0.0.1 is disabled or does not exist." in message
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError, match="Unknown error catalog key"):
        actionable_error("no_such_code")
