"""
Error sanitizer around the lifecycle manager.

Errors raised by the wrapped plugin can carry credentials (a failing
``CREATE USER ... IDENTIFIED BY '...'`` fragment, a driver message echoing the
DSN). The sanitizer replaces every known secret with its mask before the error
leaves the plugin and drops the chained driver exception.
"""

import copy
import functools
import logging
from typing import Any, Callable

from clickhouse_plugin.core.errors import ExecutionError, PluginError
from clickhouse_plugin.plugin import ClickHouse
from clickhouse_plugin.schemas import (
    DeleteUserRequest,
    DeleteUserResponse,
    InitializeRequest,
    InitializeResponse,
    NewUserRequest,
    NewUserResponse,
    UpdateUserRequest,
    UpdateUserResponse,
)

_log = logging.getLogger(__name__)

SecretsFn = Callable[[], dict[str, str]]


def _scrub(text: str, secrets: dict[str, str]) -> str:
    # Longest first so a secret containing another secret is masked whole.
    for secret in sorted(secrets, key=len, reverse=True):
        if secret:
            text = text.replace(secret, secrets[secret])
    return text


def sanitize_error(err: BaseException, secrets: dict[str, str]) -> PluginError:
    """Return a copy of *err* as a PluginError with secrets masked."""
    if isinstance(err, PluginError):
        clean = copy.copy(err)
    else:
        clean = PluginError(str(err))
    clean.message = _scrub(clean.message, secrets)
    clean.args = (clean.message,)
    if isinstance(clean, ExecutionError):
        clean.fragment = _scrub(clean.fragment, secrets)
        clean.cause = None
    return clean


def _request_secrets(req: Any) -> dict[str, str]:
    """Passwords carried by a request."""
    values: list[str] = []
    if isinstance(req, InitializeRequest):
        values.append(str(req.config.get("password") or ""))
    elif isinstance(req, NewUserRequest):
        values.append(req.password)
    elif isinstance(req, UpdateUserRequest) and req.password is not None:
        values.append(req.password.new_password)
    return {v: "[password]" for v in values if v}


def _sanitized(method: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(method)
    def wrapper(self: "DatabaseErrorSanitizer", *args: Any, **kwargs: Any) -> Any:
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            secrets = dict(self.secrets_fn())
            for arg in args:
                secrets.update(_request_secrets(arg))
            clean = sanitize_error(e, secrets)
            _log.debug("%s failed: %s", method.__name__, clean)
            raise clean from None

    return wrapper


class DatabaseErrorSanitizer:
    """Forwards every lifecycle call to *db*, masking secrets in raised errors."""

    def __init__(self, db: ClickHouse, secrets_fn: SecretsFn) -> None:
        self.db = db
        self.secrets_fn = secrets_fn

    def type(self) -> str:
        return self.db.type()

    def metadata(self) -> dict[str, Any]:
        return self.db.metadata()

    def plugin_version(self) -> str:
        return self.db.plugin_version()

    @_sanitized
    def initialize(self, req: InitializeRequest) -> InitializeResponse:
        return self.db.initialize(req)

    @_sanitized
    def new_user(self, req: NewUserRequest) -> NewUserResponse:
        return self.db.new_user(req)

    @_sanitized
    def update_user(self, req: UpdateUserRequest) -> UpdateUserResponse:
        return self.db.update_user(req)

    @_sanitized
    def delete_user(self, req: DeleteUserRequest) -> DeleteUserResponse:
        return self.db.delete_user(req)

    @_sanitized
    def close(self) -> None:
        self.db.close()


def new(username_template: str = "", version: str = "") -> DatabaseErrorSanitizer:
    """
    Build a ClickHouse plugin wrapped in the error sanitizer.

    Raises ConfigError if *username_template* does not parse.
    """
    db = ClickHouse(username_template=username_template, version=version)
    return DatabaseErrorSanitizer(db, db.secret_values)
