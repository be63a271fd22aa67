"""
Username generation from a small template language (Jinja2, fixed function table).

Exports: UsernameTemplate, parse_username_template, DEFAULT_USERNAME_TEMPLATE.
"""

from clickhouse_plugin.engines.username.template_engine import (
    DEFAULT_USERNAME_MAX_LENGTH,
    DEFAULT_USERNAME_TEMPLATE,
    UsernameTemplate,
    parse_username_template,
)

__all__ = [
    "DEFAULT_USERNAME_MAX_LENGTH",
    "DEFAULT_USERNAME_TEMPLATE",
    "UsernameTemplate",
    "parse_username_template",
]
