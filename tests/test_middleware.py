"""Unit tests for the error sanitizer (middleware.py)."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from clickhouse_plugin import DatabaseErrorSanitizer, new
from clickhouse_plugin.core.errors import (
    ConfigError,
    ConnectivityError,
    ExecutionError,
    NoChangesError,
    PluginError,
)
from clickhouse_plugin.middleware import sanitize_error
from clickhouse_plugin.plugin import ClickHouse
from clickhouse_plugin.schemas import (
    ChangePassword,
    InitializeRequest,
    NewUserRequest,
    Statements,
    UpdateUserRequest,
)
from tests.utils.clickhouse_dbapi import FakeDbapiConnection, patched_clickhouse_connect
from tests.utils.fake_engine import RecordingEngine

_CONF = {"host": "localhost", "port": 9000, "username": "admin", "password": "adminpw"}


def test_new_wraps_plugin() -> None:
    db = new(version="v9")
    assert isinstance(db, DatabaseErrorSanitizer)
    assert isinstance(db.db, ClickHouse)
    assert db.type() == "clickhouse"
    assert db.metadata()["version"] == "v9"


def test_new_rejects_bad_template() -> None:
    with pytest.raises(ConfigError):
        new(username_template="{{ display_name | nope }}")


class TestSanitizeError:
    def test_message_scrubbed(self):
        err = ConnectivityError("dial clickhouse://admin:adminpw@h:9000 failed")
        clean = sanitize_error(err, {"adminpw": "[password]"})
        assert isinstance(clean, ConnectivityError)
        assert str(clean) == "dial clickhouse://admin:[password]@h:9000 failed"
        # original untouched
        assert "adminpw" in str(err)

    def test_execution_error_fragment_scrubbed(self):
        cause = OperationalError("x", None, Exception("bad password hunter2"))
        err = ExecutionError("CREATE USER 'u' IDENTIFIED BY 'hunter2'", cause)
        clean = sanitize_error(err, {"hunter2": "[password]"})
        assert isinstance(clean, ExecutionError)
        assert clean.fragment == "CREATE USER 'u' IDENTIFIED BY '[password]'"
        assert "hunter2" not in str(clean)
        assert clean.cause is None

    def test_foreign_error_wrapped(self):
        clean = sanitize_error(RuntimeError("token adminpw"), {"adminpw": "[password]"})
        assert type(clean) is PluginError
        assert str(clean) == "token [password]"

    def test_longest_secret_first(self):
        clean = sanitize_error(PluginError("abc abcdef"), {"abc": "[a]", "abcdef": "[b]"})
        assert str(clean) == "[a] [b]"


class TestSanitizerWrapper:
    def test_passes_through_success(self):
        inner = MagicMock()
        db = DatabaseErrorSanitizer(inner, lambda: {})
        req = UpdateUserRequest(username="u", password=ChangePassword(new_password="x"))
        assert db.update_user(req) is inner.update_user.return_value
        inner.update_user.assert_called_once_with(req)

    def test_typed_error_preserved(self):
        inner = MagicMock()
        inner.update_user.side_effect = NoChangesError("no changes requested")
        db = DatabaseErrorSanitizer(inner, lambda: {"pw": "[password]"})
        with pytest.raises(NoChangesError, match="no changes requested") as exc_info:
            db.update_user(UpdateUserRequest(username="u"))
        assert exc_info.value.__cause__ is None

    def test_new_user_password_scrubbed(self):
        engine = RecordingEngine(fail_on="CREATE")
        with patch("clickhouse_plugin.core.pool.producer.open_engine", return_value=engine):
            db = new()
            db.initialize(InitializeRequest(config=dict(_CONF)))
            with pytest.raises(ExecutionError) as exc_info:
                db.new_user(
                    NewUserRequest(
                        statements=Statements(
                            commands=["CREATE USER '{{name}}' IDENTIFIED BY '{{password}}'"]
                        ),
                        password="userpw-123",
                        expiration=datetime(2030, 1, 1),
                    )
                )
        err = exc_info.value
        assert "userpw-123" not in str(err)
        assert "userpw-123" not in err.fragment
        assert "[password]" in err.fragment
        assert err.__cause__ is None

    def test_admin_password_scrubbed(self):
        with patch(
            "clickhouse_plugin.core.pool.producer.open_engine",
            side_effect=RuntimeError("cannot reach admin:adminpw@localhost"),
        ):
            db = new()
            db.initialize(InitializeRequest(config=dict(_CONF)))
            with pytest.raises(ConnectivityError) as exc_info:
                db.new_user(
                    NewUserRequest(statements=Statements(commands=["CREATE USER '{{name}}'"]))
                )
        assert "adminpw" not in str(exc_info.value)
        assert "[password]" in str(exc_info.value)

    def test_driver_error_scrubbed(self):
        """A clickhouse-connect rejection echoing the password is masked."""
        with patched_clickhouse_connect(FakeDbapiConnection(fail_on="IDENTIFIED")):
            db = new()
            db.initialize(
                InitializeRequest(
                    config={"connection_url": "http://127.0.0.1:8123", "password": "adminpw"}
                )
            )
            try:
                with pytest.raises(ExecutionError) as exc_info:
                    db.new_user(
                        NewUserRequest(
                            statements=Statements(
                                commands=["CREATE USER '{{name}}' IDENTIFIED BY '{{password}}'"]
                            ),
                            password="userpw-123",
                        )
                    )
            finally:
                db.close()
        err = exc_info.value
        assert err.fragment.startswith("CREATE USER")
        assert "userpw-123" not in str(err)
        assert "Code: 497" in str(err)
        assert err.__cause__ is None
