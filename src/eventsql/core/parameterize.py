"""Named placeholder substitution into positional bind parameters."""

import re
from typing import Any, Mapping

# {{ name }} or {{ name::type }}
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)(::\w+)?\s*}}")


def parameterize(template: str, data: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """
    Rewrite named placeholders as asyncpg positional markers.

    Every occurrence gets its own ``$n`` slot, in template order, even when
    the same name appears more than once. A ``::type`` suffix is kept right
    after the marker. Names missing from ``data`` bind ``None``.

    Args:
        template: SQL containing ``{{ name }}`` placeholders
        data: Values by placeholder name

    Returns:
        Tuple of (positional SQL, ordered parameter list)
    """
    params: list[Any] = []

    def replace(match: "re.Match[str]") -> str:
        name, cast = match.group(1), match.group(2)
        params.append(data.get(name))
        return f"${len(params)}{cast or ''}"

    sql = PLACEHOLDER_PATTERN.sub(replace, template or "")
    return sql, params
