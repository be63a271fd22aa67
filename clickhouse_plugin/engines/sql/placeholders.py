"""
Placeholder substitution for statement templates.

Statements reference request values as ``{{name}}``, ``{{username}}``,
``{{password}}`` and ``{{expiration}}``. Substitution is plain text
replacement: no escaping, no expression evaluation.
"""


def query_helper(template: str, data: dict[str, str]) -> str:
    """Replace every ``{{key}}`` in *template* with ``data[key]``."""
    for key, value in data.items():
        template = template.replace("{{" + key + "}}", value)
    return template
