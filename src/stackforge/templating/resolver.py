"""Template variable substitution.

dashboards reference variables as $name, ${name}, ${name:format} or the older
[[name]] / [[name:format]]. a variable is either a single value or a list
(multi-value). how a list renders depends on the format:

  plain (no format)  -> {a,b}       (glob style, what the api filters understand)
  csv                -> a,b         (callers split this back apart)
  regex              -> (a|b)       (values regex-escaped first)

scoped vars (per-panel, e.g. repeated panels) win over dashboard variables.
unknown variables are left exactly as written.
"""

import re
from collections.abc import Mapping
from typing import Any, Protocol

CSV = "csv"
REGEX = "regex"

VARIABLE_PATTERN = re.compile(
    r"\$(\w+)|\[\[(\w+?)(?::(\w+))?\]\]|\$\{(\w+)(?::(\w+))?\}"
)
# same character class as the dashboard's regex escaping
_REGEX_SPECIAL = re.compile(r"[\\^$*+?.()|\[\]{}/]")


def regex_escape(value: str) -> str:
    return _REGEX_SPECIAL.sub(lambda m: "\\" + m.group(0), value)


class Resolver(Protocol):
    """What the rest of the package needs from a template resolver."""

    def replace(
        self, target: str | None, scoped_vars: Mapping[str, Any] | None = None, fmt: str | None = None
    ) -> str: ...


class TemplateResolver:
    """Resolves variable references against a fixed set of variables.

    variables maps name -> value, where value is a string or a list of strings.
    """

    def __init__(self, variables: Mapping[str, str | list[str]] | None = None) -> None:
        self.variables: dict[str, str | list[str]] = dict(variables or {})

    @property
    def variable_names(self) -> list[str]:
        return [f"${name}" for name in self.variables]

    def replace(
        self,
        target: str | None,
        scoped_vars: Mapping[str, Any] | None = None,
        fmt: str | None = None,
    ) -> str:
        """Replace every variable reference in target.

        an explicit ${name:format} in the text beats the fmt argument.
        """
        if not target:
            return target or ""

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1) or match.group(2) or match.group(4)
            text_fmt = match.group(3) or match.group(5)
            value = self._lookup(name, scoped_vars)
            if value is None:
                return match.group(0)
            return self.format_value(value, text_fmt or fmt)

        return VARIABLE_PATTERN.sub(substitute, target)

    def _lookup(self, name: str, scoped_vars: Mapping[str, Any] | None) -> Any:
        if scoped_vars and name in scoped_vars:
            scoped = scoped_vars[name]
            # scoped vars come as {"text": ..., "value": ...}
            if isinstance(scoped, Mapping):
                return scoped.get("value")
            return scoped
        return self.variables.get(name)

    @staticmethod
    def format_value(value: Any, fmt: str | None) -> str:
        if isinstance(value, (list, tuple)):
            values = [str(v) for v in value]
            if len(values) == 1:
                value = values[0]
            elif fmt == CSV:
                return ",".join(values)
            elif fmt == REGEX:
                return "(" + "|".join(regex_escape(v) for v in values) + ")"
            else:
                return "{" + ",".join(values) + "}"

        value = str(value)
        if fmt == REGEX:
            return regex_escape(value)
        return value
