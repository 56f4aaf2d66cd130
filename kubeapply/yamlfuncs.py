"""Named function bundles and YAML helpers for starlark configs."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import yaml

from kubeapply.templating import to_yaml

_SCALAR_TYPES = (bool, int, float, str)

# Plain scalars that resolve to floats, including forms such as "1e+06"
# that have no decimal point.
_FLOAT_RE = re.compile(r"^[-+]?(\.[0-9]+|[0-9]+(\.[0-9]*)?)([eE][-+]?[0-9]+)?$")


class _Loader(yaml.SafeLoader):
    """Safe loader that reads exponent floats as floats and timestamps as text."""


_Loader.add_implicit_resolver("tag:yaml.org,2002:float", _FLOAT_RE, list("-+0123456789."))
_Loader.add_constructor(
    "tag:yaml.org,2002:timestamp",
    lambda loader, node: loader.construct_scalar(node),
)


@dataclass
class Module:
    """A bundle of functions under a common name."""

    name: str
    attrs: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f'<module "{self.name}">'

    def __bool__(self) -> bool:
        return True

    def attr(self, name: str) -> Any:
        """Return the attribute called name, or None if there is none."""
        return self.attrs.get(name)

    def attr_names(self) -> list[str]:
        """Return the attribute names in sorted order."""
        return sorted(self.attrs)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"

    sign, raw_digits, exponent = Decimal(repr(value)).as_tuple()
    digits = list(raw_digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    prefix = "-" if sign else ""
    if digits == [0]:
        return prefix + "0"

    text = "".join(str(digit) for digit in digits)
    point = len(digits) + exponent
    exp10 = point - 1

    if exp10 < -4 or exp10 >= 6:
        mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{text}"
    if point >= len(text):
        return prefix + text + "0" * (point - len(text))
    return f"{prefix}{text[:point]}.{text[point:]}"


def _quote_is_safe(text: str) -> bool:
    return all(0x20 <= ord(char) < 0x10000 for char in text)


def _is_surrogate(code: int) -> bool:
    return 0xD800 <= code <= 0xDFFF


def _quote_simple(text: str) -> str:
    parts = ['"']
    for char in text:
        code = ord(char)
        if char in '"\\':
            parts.append("\\" + char)
        elif _is_surrogate(code):
            parts.append("\\ufffd")
        elif char.isprintable():
            parts.append(char)
        elif code < 0x20 or code == 0x7F:
            parts.append(f"\\x{code:02x}")
        elif code < 0x10000:
            parts.append(f"\\u{code:04x}")
        else:
            parts.append(f"\\U{code:08x}")
    parts.append('"')
    return "".join(parts)


_JSON_SHORT_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _quote_json(text: str) -> str:
    parts = ['"']
    for char in text:
        code = ord(char)
        if char in _JSON_SHORT_ESCAPES:
            parts.append(_JSON_SHORT_ESCAPES[char])
        elif code < 0x20 or char in "<>&" or code in (0x2028, 0x2029):
            parts.append(f"\\u{code:04x}")
        elif _is_surrogate(code):
            parts.append("\\ufffd")
        else:
            parts.append(char)
    parts.append('"')
    return "".join(parts)


def _write(value: Any, out: list[str]) -> None:
    if value is None:
        out.append("null")
    elif isinstance(value, bool):
        out.append("true" if value else "false")
    elif isinstance(value, int):
        out.append(str(value))
    elif isinstance(value, float):
        out.append(_format_float(value))
    elif isinstance(value, str):
        out.append(_quote_simple(value) if _quote_is_safe(value) else _quote_json(value))
    elif isinstance(value, (list, tuple)):
        out.append("[")
        for index, element in enumerate(value):
            if index:
                out.append(", ")
            _write(element, out)
        out.append("]")
    elif isinstance(value, Mapping):
        out.append("{")
        for index, (key, element) in enumerate(value.items()):
            if index:
                out.append(", ")
            _write(key, out)
            out.append(": ")
            _write(element, out)
        out.append("}")
    else:
        raise TypeError(
            f"TypeError: value {value!s} (type `{type(value).__name__}') "
            "can't be converted to JSON."
        )


def write_json(value: Any) -> str:
    """Return a JSON rendering of a plain value (None, scalars, lists, dicts)."""
    out: list[str] = []
    _write(value, out)
    return "".join(out)


def _load(blob: str) -> Any:
    for document in yaml.load_all(blob, Loader=_Loader):
        return document
    return None


def yaml_marshal(value: Any) -> str:
    """Serialise a plain value to block-style YAML with sorted keys."""
    return to_yaml(_load(write_json(value)))


def _check_value(obj: Any) -> Any:
    if obj is None or isinstance(obj, _SCALAR_TYPES):
        return obj
    if isinstance(obj, dict):
        result = {}
        for key, element in obj.items():
            if not (key is None or isinstance(key, _SCALAR_TYPES)):
                raise ValueError(f"map ({obj!r}) is not a supported key type")
            result[key] = _check_value(element)
        return result
    if isinstance(obj, list):
        return [_check_value(element) for element in obj]
    raise ValueError(f"{type(obj).__name__} ({obj!r}) is not a supported type")


def yaml_unmarshal(blob: str) -> Any:
    """Parse the first YAML document in blob into dicts, lists and scalars."""
    if not isinstance(blob, str):
        raise TypeError(f"yaml.unmarshal: got {type(blob).__name__}, want string")
    return _check_value(_load(blob))


def yaml_module() -> Module:
    """Return the module holding the YAML marshal and unmarshal functions."""
    return Module(name="yaml", attrs={"marshal": yaml_marshal, "unmarshal": yaml_unmarshal})