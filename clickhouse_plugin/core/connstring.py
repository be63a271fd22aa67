"""
Connection string builder for the administrative endpoint.

Canonical form::

    scheme://host:port/database?username=...&password=...&secure=true&skip_verify=true&debug=true

Query keys are emitted in sorted order so the same fields always build the
same URL.
"""

from dataclasses import dataclass, field
from urllib.parse import parse_qsl, quote, unquote, urlencode, urlsplit

from clickhouse_plugin.core.config import settings
from clickhouse_plugin.core.errors import ConfigError


@dataclass
class ConnStringBuilder:
    """Bidirectional mapping between discrete connection fields and a URL."""

    host: str = ""
    port: int = 0
    database: str = ""
    username: str = ""
    password: str = ""
    tls: bool = False
    tls_skip_verify: bool = False
    debug: bool = False
    scheme: str = field(default_factory=lambda: settings.DEFAULT_SCHEME)
    extra_params: dict[str, str] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Fluent setters
    # ------------------------------------------------------------------

    def with_host(self, host: str) -> "ConnStringBuilder":
        self.host = host
        return self

    def with_port(self, port: int) -> "ConnStringBuilder":
        self.port = port
        return self

    def with_database(self, database: str) -> "ConnStringBuilder":
        self.database = database
        return self

    def with_username(self, username: str) -> "ConnStringBuilder":
        self.username = username
        return self

    def with_password(self, password: str) -> "ConnStringBuilder":
        self.password = password
        return self

    def with_tls(self, tls: bool, skip_verify: bool = False) -> "ConnStringBuilder":
        self.tls = tls
        self.tls_skip_verify = skip_verify
        return self

    def with_debug(self, debug: bool) -> "ConnStringBuilder":
        self.debug = debug
        return self

    def with_extra_param(self, key: str, value: str) -> "ConnStringBuilder":
        self.extra_params[key] = value
        return self

    # ------------------------------------------------------------------

    def check(self) -> None:
        """Raise ConfigError unless both host and port are set."""
        if not self.host:
            raise ConfigError("host is required")
        if not self.port:
            raise ConfigError("port is required")

    def build(self) -> str:
        q: dict[str, str] = {}
        if self.username:
            q["username"] = self.username
        if self.password:
            q["password"] = self.password
        if self.tls:
            q["secure"] = "true"
            if self.tls_skip_verify:
                q["skip_verify"] = "true"
        if self.debug:
            q["debug"] = "true"
        q.update(self.extra_params)

        host = f"[{self.host}]" if ":" in self.host else self.host
        url = f"{self.scheme}://{host}:{self.port}"
        if self.database:
            url += "/" + quote(self.database)
        if q:
            url += "?" + urlencode(sorted(q.items()))
        return url

    @classmethod
    def from_conn_string(cls, conn_string: str) -> "ConnStringBuilder":
        """
        Parse a connection URL.

        Credentials in the userinfo part win over ``username``/``password``
        query parameters. Flags are only set by the literal ``true``; any other
        value reads as False. Unrecognised query keys are kept as extra params.
        """
        try:
            u = urlsplit(conn_string)
            port = u.port
        except ValueError as e:
            raise ConfigError(f"failed to parse connection string: {e}") from e

        q = dict(parse_qsl(u.query, keep_blank_values=True))
        builder = cls(
            scheme=u.scheme or settings.DEFAULT_SCHEME,
            host=u.hostname or "",
            port=port or 0,
            database=unquote(u.path.lstrip("/")),
        )
        if u.username:
            builder.username = unquote(u.username)
        if u.password:
            builder.password = unquote(u.password)
        if not builder.username:
            builder.username = q.get("username", "")
        if not builder.password:
            builder.password = q.get("password", "")

        builder.tls = q.get("secure") == "true"
        builder.tls_skip_verify = q.get("skip_verify") == "true"
        builder.debug = q.get("debug") == "true"

        known = {"username", "password", "secure", "skip_verify", "debug"}
        builder.extra_params = {k: v for k, v in q.items() if k not in known}
        return builder
