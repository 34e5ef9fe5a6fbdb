"""
Flattens instance parameters into command-line tokens.

Policy, kept identical to the flag helper of the process library poolcmd
replaces:

- ``camelCase`` keys become ``--camel-case``; other keys are used as written.
- ``True`` gives a bare flag, ``False`` and ``None`` are dropped.
- Lists and tuples give one flag with a comma-joined value.
- Nested mappings give dotted flags (``--log.level debug``).
- An empty string gives a bare flag.
"""

import re
from typing import Any, List, Mapping

from poolcmd.settings import PORT_PLACEHOLDER

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def to_flag(key: str) -> str:
    """Returns the `--flag` spelling of a parameter key."""
    parts = [_CAMEL_BOUNDARY.sub(r"\1-\2", part).lower() for part in key.split(".")]
    return "--" + ".".join(parts)


def _stringify(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def _flatten(key: str, value: Any) -> List[str]:
    if value is None or value is False:
        return []
    if value is True:
        return [to_flag(key)]
    if isinstance(value, Mapping):
        tokens: List[str] = []
        for sub_key, sub_value in value.items():
            tokens.extend(_flatten(f"{key}.{sub_key}", sub_value))
        return tokens
    stringified = _stringify(value)
    if stringified == "":
        return [to_flag(key)]
    return [to_flag(key), stringified]


def to_args(params: Mapping[str, Any]) -> List[str]:
    """
    Flattens a parameter map into an ordered list of CLI tokens.

    :param params: Parameter names mapped to their values.
    :return list: Tokens in the insertion order of `params`.
    """
    args: List[str] = []
    for key, value in params.items():
        args.extend(_flatten(key, value))
    return args


def substitute_port(text: str, port: int) -> str:
    """Replaces every `{PORT}` placeholder in `text` with the decimal port."""
    return text.replace(PORT_PLACEHOLDER, str(port))


def templated_args(params: Mapping[str, Any], port: int) -> List[str]:
    """Flattens `params` and substitutes `port` into every resulting token."""
    return [substitute_port(token, port) for token in to_args(params)]
