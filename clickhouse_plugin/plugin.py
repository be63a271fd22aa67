"""
Credential lifecycle manager for ClickHouse.

initialize / new_user / update_user / delete_user / close all hold the
producer lock for their full duration, so statement execution is never
interleaved between concurrent calls on one instance.
"""

import logging
import re
from enum import Enum
from typing import Any

from sqlalchemy.engine import Engine

from clickhouse_plugin.core.config import settings
from clickhouse_plugin.core.errors import (
    ConfigError,
    CreationError,
    ExecutionError,
    NoChangesError,
    NotInitializedError,
    RevocationError,
)
from clickhouse_plugin.core.pool import ConnectionProducer
from clickhouse_plugin.engines.sql import execute_statements
from clickhouse_plugin.engines.username import (
    DEFAULT_USERNAME_TEMPLATE,
    UsernameTemplate,
    parse_username_template,
)
from clickhouse_plugin.schemas import (
    ChangeExpiration,
    ChangePassword,
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

CLICKHOUSE_TYPE_NAME = "clickhouse"

DEFAULT_REVOCATION_STATEMENT = "DROP USER IF EXISTS '{{name}}'"
DEFAULT_ROTATE_CREDENTIALS_STATEMENT = (
    "ALTER USER IF EXISTS '{{name}}' IDENTIFIED BY '{{password}}'"
)

EXPIRATION_FORMAT = "%Y-%m-%d %H:%M:%S"


class PluginState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


def default_username_template() -> str:
    return DEFAULT_USERNAME_TEMPLATE


def validate_username(username: str, pattern: str) -> bool:
    """True if *pattern* matches anywhere in *username*; invalid patterns never match."""
    try:
        return re.search(pattern, username) is not None
    except re.error:
        return False


class ClickHouse:
    """ClickHouse database plugin: issues, rotates and revokes users."""

    def __init__(self, username_template: str = "", version: str = "") -> None:
        self.producer = ConnectionProducer()
        self.username_producer: UsernameTemplate = parse_username_template(
            username_template
        )
        self.version = version or settings.PLUGIN_VERSION
        self.state = PluginState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Plugin metadata
    # ------------------------------------------------------------------

    def type(self) -> str:
        return CLICKHOUSE_TYPE_NAME

    def metadata(self) -> dict[str, Any]:
        return {"version": self.version, "type": CLICKHOUSE_TYPE_NAME}

    def plugin_version(self) -> str:
        return self.version

    def secret_values(self) -> dict[str, str]:
        return self.producer.secret_values()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, req: InitializeRequest) -> InitializeResponse:
        """
        Parse ``username_template`` (default when absent) and set up the
        connection producer. Returns the config unchanged for host bookkeeping.
        """
        with self.producer.lock:
            self._require_open()
            template = req.config.get("username_template") or ""
            if not isinstance(template, str):
                raise ConfigError("failed to get username_template: must be a string")
            username_producer = parse_username_template(template)

            self.producer.init(req.config, req.verify_connection)
            self.username_producer = username_producer
            self.state = PluginState.INITIALIZED
            _log.info("plugin initialized verify_connection=%s", req.verify_connection)
            return InitializeResponse(config=req.config)

    def new_user(self, req: NewUserRequest) -> NewUserResponse:
        """
        Generate a username and run the creation statements with
        ``{{name}}``, ``{{username}}``, ``{{password}}``, ``{{expiration}}``.
        """
        if not req.statements.commands:
            raise CreationError("no creation statements provided")

        with self.producer.lock:
            engine = self._connection()
            username = self.username_producer.generate(req.username_config)
            expiration = (
                req.expiration.strftime(EXPIRATION_FORMAT)
                if req.expiration is not None
                else ""
            )
            execute_statements(
                engine,
                req.statements.commands,
                {
                    "name": username,
                    "username": username,
                    "password": req.password,
                    "expiration": expiration,
                },
            )
            _log.info("created user %s", username)
            return NewUserResponse(username=username)

    def update_user(self, req: UpdateUserRequest) -> UpdateUserResponse:
        if req.password is None and req.expiration is None:
            raise NoChangesError("no changes requested")

        with self.producer.lock:
            engine = self._connection()
            if req.password is not None:
                self._update_user_password(engine, req.username, req.password)
            if req.expiration is not None:
                self._update_user_expiration(engine, req.username, req.expiration)
            return UpdateUserResponse()

    def _update_user_password(
        self, engine: Engine, username: str, change: ChangePassword
    ) -> None:
        statements = change.statements.commands or [
            DEFAULT_ROTATE_CREDENTIALS_STATEMENT
        ]
        execute_statements(
            engine,
            statements,
            {
                "name": username,
                "username": username,
                "password": change.new_password,
            },
        )
        _log.info("rotated password for user %s", username)

    def _update_user_expiration(
        self, engine: Engine, username: str, change: ChangeExpiration
    ) -> None:
        # No default statement: without statements the change is a no-op.
        if not change.statements.commands:
            _log.debug("no expiration statements for user %s; skipping", username)
            return
        execute_statements(
            engine,
            change.statements.commands,
            {
                "name": username,
                "username": username,
                "expiration": change.new_expiration.strftime(EXPIRATION_FORMAT),
            },
        )

    def delete_user(self, req: DeleteUserRequest) -> DeleteUserResponse:
        with self.producer.lock:
            engine = self._connection()
            statements = req.statements.commands or [DEFAULT_REVOCATION_STATEMENT]
            try:
                execute_statements(
                    engine,
                    statements,
                    {"name": req.username, "username": req.username},
                )
            except ExecutionError as e:
                raise RevocationError(f"failed to delete user: {e}") from e
            _log.info("deleted user %s", req.username)
            return DeleteUserResponse()

    def close(self) -> None:
        """Release the administrative connection. Safe to call repeatedly."""
        with self.producer.lock:
            self.producer.close()
            if self.state != PluginState.CLOSED:
                _log.info("plugin closed")
            self.state = PluginState.CLOSED

    # ------------------------------------------------------------------

    def _require_open(self) -> None:
        if self.state == PluginState.CLOSED:
            raise NotInitializedError("plugin is closed")

    def _connection(self) -> Engine:
        self._require_open()
        return self.producer.connection()
