"""Template variable interpolation for query parameters.

each kind of query field resolves a little differently:
  - plain props get plain substitution
  - filter values get regex formatting, since the api matches them as regexes
    when the operator is =~ / !=~ and multi-value variables have to become (a|b)
  - group bys get csv formatting and are split back into separate tokens
"""

from collections.abc import Mapping
from typing import Any

from stackforge.models.query import Filter
from stackforge.templating.resolver import CSV, REGEX, Resolver


def interpolate_props(
    resolver: Resolver, fields: Mapping[str, Any] | None, scoped_vars: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Resolve every non-empty string field, pass everything else through."""
    return {
        key: resolver.replace(value, scoped_vars) if value and isinstance(value, str) else value
        for key, value in (fields or {}).items()
    }


def interpolate_filters(
    resolver: Resolver, tokens: list[str] | None, scoped_vars: Mapping[str, Any] | None = None
) -> list[str]:
    """Resolve a flat filter token list.

    filters without a value are incomplete (the editor leaves them around
    while you type) and get dropped. order of the rest is kept, operators
    are never touched.
    """
    scoped_vars = scoped_vars or {}
    complete = [f for f in Filter.from_tokens(list(tokens or [])) if f.value]

    resolved: list[str] = []
    for f in complete:
        resolved.extend(
            Filter(
                key=resolver.replace(f.key, scoped_vars),
                operator=f.operator,
                value=resolver.replace(f.value, scoped_vars, REGEX),
                condition=f.condition,
            ).to_tokens()
        )
    return resolved


def interpolate_group_bys(
    resolver: Resolver, tokens: list[str] | None, scoped_vars: Mapping[str, Any] | None = None
) -> list[str]:
    """Resolve group bys, expanding multi-value variables in place.

    a multi-value variable comes back from the resolver comma-joined, so we
    split it. note a single value that legitimately contains a comma gets
    split too - the resolver gives us no way to tell the two apart.
    """
    scoped_vars = scoped_vars or {}
    group_bys: list[str] = []
    for token in tokens or []:
        group_bys.extend(resolver.replace(token, scoped_vars, CSV).split(","))
    return group_bys
