"""Single-rule checks applied to one field value."""

from __future__ import annotations

import datetime as _dt
import functools
import math
import operator
import re
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .validation_errors import (
    EmailError,
    LengthError,
    RequiredError,
    RuleError,
    TimeError,
)


@dataclass(frozen=True)
class Formats:
    """Regular expressions used by the email, date, time and datetime rules."""

    email: str = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    date: str = r"^\d{4}-\d{2}-\d{2}$"
    time: str = r"^\d{2}:\d{2}:\d{2}\.{0,1}\d+$"
    datetime: str = r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"


class NumberKind(Enum):
    """Numeric field kinds; integer kinds wrap rule limits to their width."""

    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @property
    def is_float(self) -> bool:
        return self in (NumberKind.FLOAT32, NumberKind.FLOAT64)


_INTEGER_WIDTHS = {
    NumberKind.INT: (64, True),
    NumberKind.INT8: (8, True),
    NumberKind.INT16: (16, True),
    NumberKind.INT32: (32, True),
    NumberKind.INT64: (64, True),
    NumberKind.UINT: (64, False),
    NumberKind.UINT8: (8, False),
    NumberKind.UINT16: (16, False),
    NumberKind.UINT32: (32, False),
    NumberKind.UINT64: (64, False),
}

_INT_BOUNDS = (
    ("min<=", operator.le, "[{name}]长度不能小于等于：{limit}"),
    ("min<", operator.lt, "[{name}]长度不能小于：{limit}"),
    ("max>=", operator.ge, "[{name}]长度不能大于等于：{limit}"),
    ("max>", operator.gt, "[{name}]长度不能大于：{limit}"),
)

_FLOAT_BOUNDS = (
    ("min<=", operator.le, "[{name}]长度不能小于等于：{limit:f}"),
    ("min<", operator.lt, "[{name}]长度不能小于[{limit:f}]"),
    ("max>=", operator.ge, "[{name}]长度不能大于等于：{limit:f}"),
    ("max>", operator.gt, "[{name}]长度不能大于[{limit:f}]"),
)

_INT_LITERAL = re.compile(
    r"[+-]?(0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+|0[0-7_]*|[1-9][0-9_]*)"
)
_ZERO_DECIMAL = re.compile(r"(.*)\.0+")
_INT64_MIN, _INT64_MAX = -(1 << 63), (1 << 63) - 1


def _trim_zero_decimal(text: str) -> str:
    match = _ZERO_DECIMAL.fullmatch(text)
    return match.group(1) if match else text


def _to_int(text: str) -> int:
    """Parse an integer literal (decimal, 0x, 0o, 0b or leading-zero octal); 0 if invalid."""
    text = _trim_zero_decimal(text)
    if not _INT_LITERAL.fullmatch(text):
        return 0
    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-")
    try:
        if len(digits) > 1 and digits[0] == "0" and digits[1] not in "xXoObB":
            number = int(digits[1:], 8)
        else:
            number = int(digits, 0)
    except ValueError:
        return 0
    number *= sign
    if not _INT64_MIN <= number <= _INT64_MAX:
        return 0
    return number


def _to_integer_kind(text: str, kind: NumberKind) -> int:
    bits, signed = _INTEGER_WIDTHS[kind]
    number = _to_int(text)
    if not signed and number < 0:
        return 0
    number &= (1 << bits) - 1
    if signed and number >= 1 << (bits - 1):
        number -= 1 << bits
    return number


def _to_float32(number: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", number))[0]
    except OverflowError:
        return math.copysign(math.inf, number)


def _to_float(text: str, kind: NumberKind) -> float:
    if text != text.strip():
        return 0.0
    try:
        number = float(text)
    except ValueError:
        return 0.0
    return _to_float32(number) if kind is NumberKind.FLOAT32 else number


def _matches(pattern: str, value: str) -> bool:
    try:
        return re.search(pattern, value, re.ASCII) is not None
    except re.error:
        return False


def _require(rule: str, field_name: str) -> None:
    if rule == "required":
        raise RequiredError(field_name)


def _check_bounds(
    rule: str,
    field_name: str,
    value: Any,
    table,
    limit: Callable[[str], Any],
    shown: Callable[[str], Any],
) -> bool:
    """Apply a min/max rule; return True when ``rule`` was one."""
    for prefix, broken, template in table:
        if rule.startswith(prefix):
            text = rule.removeprefix(prefix)
            if broken(value, limit(text)):
                raise LengthError.with_message(template.format(name=field_name, limit=shown(text)))
            return True
    return False


def _range_limits(rule: str, field_name: str, separator: str, shape: str, convert):
    parts = rule.removeprefix("range=").split(separator)
    if len(parts) != 2:
        raise RuleError.with_message(f"[{field_name}]规则定义错误，规则定义错误，规则格式：{shape}")
    return convert(parts[0]), convert(parts[1])


def _pattern_rule(rule: str, formats: Formats) -> Optional[tuple]:
    # "time" is tested before "time=", so a custom time pattern never applies.
    if rule.startswith("time"):
        return formats.time, "时间"
    if rule.startswith("datetime="):
        return rule.removeprefix("datetime="), "时间"
    if rule.startswith("datetime"):
        return formats.datetime, "时间"
    if rule.startswith("date="):
        return rule.removeprefix("date="), "日期"
    if rule.startswith("date"):
        return formats.date, "日期"
    return None


def check_string(rule: str, field_name: str, value: Optional[str], formats: Optional[Formats] = None) -> None:
    """Check a string against one rule; empty strings pass every rule."""
    formats = formats or Formats()
    if value is None:
        _require(rule, field_name)
        return
    if value == "" or rule == "required":
        return
    if rule in ("email", "email="):
        pattern = formats.email if rule == "email" else ""
        if not _matches(pattern, value):
            raise EmailError(field_name)
        return
    pattern_rule = _pattern_rule(rule, formats)
    if pattern_rule is not None:
        pattern, label = pattern_rule
        if not _matches(pattern, value):
            raise TimeError.with_message(f"[{field_name}]{label}格式错误，正确格式：{pattern}")
        return
    length = len(value)
    if _check_bounds(rule, field_name, length, _INT_BOUNDS, _to_int, _to_int):
        return
    if rule.startswith("range="):
        low, high = _range_limits(rule, field_name, ",", "d~d", _to_int)
        if length < low or length > high:
            raise LengthError.with_message(f"[{field_name}]长度必须在：{low}~{high}之间")
    elif rule.startswith("length="):
        expected = _to_int(rule.removeprefix("length="))
        if length != expected:
            raise LengthError.with_message(f"[{field_name}]长度必须为：{expected}")


def _check_integer(rule: str, field_name: str, value: int, kind: NumberKind) -> None:
    convert = functools.partial(_to_integer_kind, kind=kind)
    if _check_bounds(rule, field_name, value, _INT_BOUNDS, convert, _to_int):
        return
    if rule.startswith("range="):
        low, high = _range_limits(rule, field_name, "~", "d~d", convert)
        if value < low or value > high:
            raise LengthError.with_message(f"[{field_name}]长度必须在：{low}~{high}之间")


def _check_float(rule: str, field_name: str, value: float, kind: NumberKind) -> None:
    value = float(value)
    if kind is NumberKind.FLOAT32:
        value = _to_float32(value)
    convert = functools.partial(_to_float, kind=kind)
    if _check_bounds(rule, field_name, value, _FLOAT_BOUNDS, convert, convert):
        return
    if rule.startswith("range="):
        low, high = _range_limits(rule, field_name, "~", "f~f", convert)
        if value < low or value > high:
            raise LengthError.with_message(f"[{field_name}]长度必须在：{low:f}~{high:f}之间")


def check_number(rule: str, field_name: str, value: Optional[float], kind: NumberKind) -> None:
    """Check a number against one rule (required, min<, min<=, max>, max>=, range=a~b)."""
    if value is None:
        _require(rule, field_name)
        return
    if kind.is_float:
        _check_float(rule, field_name, value, kind)
    else:
        _check_integer(rule, field_name, value, kind)


def check_time(rule: str, field_name: str, value: Any) -> None:
    """Check that a present value is a datetime; ``required`` rejects None."""
    if value is None:
        _require(rule, field_name)
        return
    if not isinstance(value, _dt.datetime):
        raise TimeError.with_message(f"[{field_name}]必须是时间类型")