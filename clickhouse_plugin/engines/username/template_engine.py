"""
Username template engine.

Templates are Jinja2 expressions evaluated in a sandbox whose filters and
globals are replaced by the fixed table in ``functions``. Templates are parsed
once; unknown names and syntax errors are reported at parse time, not when a
username is generated.
"""

import logging
from typing import Any

from jinja2 import StrictUndefined, TemplateError, meta, nodes
from jinja2.sandbox import SandboxedEnvironment

from clickhouse_plugin.core.errors import ConfigError
from clickhouse_plugin.engines.username.functions import (
    USERNAME_FILTERS,
    USERNAME_FUNCTIONS,
)
from clickhouse_plugin.schemas import UsernameMetadata

_log = logging.getLogger(__name__)

DEFAULT_USERNAME_TEMPLATE = (
    "v-{{ display_name | truncate(8) }}-{{ role_name | truncate(8) }}"
    "-{{ random(15) }}-{{ unix_time() }}"
)
DEFAULT_USERNAME_MAX_LENGTH = 32

_VARIABLES = frozenset({"display_name", "role_name"})
_ALLOWED_NAMES = _VARIABLES | frozenset(USERNAME_FUNCTIONS)

_USERNAME_ENV: "_UsernameEnvironment | None" = None


class _UsernameEnvironment(SandboxedEnvironment):
    """Sandbox with no attribute access: only the function table is callable."""

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        return False


def _check_nodes(ast: nodes.Template) -> None:
    """Reject attribute / item lookups and calls on anything but a table function."""
    lookup = next(ast.find_all((nodes.Getattr, nodes.Getitem)), None)
    if lookup is not None:
        raise ConfigError(
            "attribute access is not allowed in username templates "
            f"(line {lookup.lineno})"
        )
    for call in ast.find_all(nodes.Call):
        if not isinstance(call.node, nodes.Name):
            raise ConfigError(
                "only template functions may be called in username templates "
                f"(line {call.lineno})"
            )


def _get_username_env() -> _UsernameEnvironment:
    """Return the shared sandbox with only the username function table."""
    global _USERNAME_ENV
    if _USERNAME_ENV is None:
        env = _UsernameEnvironment(autoescape=False, undefined=StrictUndefined)
        env.filters = dict(USERNAME_FILTERS)
        env.globals = dict(USERNAME_FUNCTIONS)
        _USERNAME_ENV = env
    return _USERNAME_ENV


class UsernameTemplate:
    """A parsed username template plus an optional overall length bound."""

    def __init__(self, source: str, max_length: int | None = None) -> None:
        env = _get_username_env()
        try:
            ast = env.parse(source)
            _check_nodes(ast)
            unknown = meta.find_undeclared_variables(ast) - _ALLOWED_NAMES
            if unknown:
                raise ConfigError(
                    f"unknown names in username template: {sorted(unknown)}. "
                    f"Available: {sorted(_ALLOWED_NAMES)}."
                )
            self._template = env.from_string(ast)
        except TemplateError as e:
            raise ConfigError(f"failed to parse username template: {e}") from e
        self.source = source
        self.max_length = max_length

    def generate(self, metadata: UsernameMetadata) -> str:
        try:
            username = self._template.render(
                display_name=metadata.display_name,
                role_name=metadata.role_name,
            )
        except (TemplateError, ValueError, TypeError) as e:
            raise ConfigError(f"failed to generate username: {e}") from e
        username = username.strip()
        if self.max_length is not None:
            username = username[: self.max_length]
        return username


def parse_username_template(source: str = "") -> UsernameTemplate:
    """Parse *source*, or the default template (bounded to 32 chars) when empty."""
    if not source:
        return UsernameTemplate(
            DEFAULT_USERNAME_TEMPLATE, max_length=DEFAULT_USERNAME_MAX_LENGTH
        )
    _log.debug("using custom username template")
    return UsernameTemplate(source)
