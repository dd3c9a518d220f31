"""Rule-driven validation of dataclass instances."""

from __future__ import annotations

import dataclasses
import datetime as _dt
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from .rules import Formats, NumberKind, check_number, check_string, check_time
from .validation_errors import RequiredError, ValidateError

T = TypeVar("T")

_RULE = "novakit.rule"
_NAME = "novakit.name"
_KIND = "novakit.kind"

_STRING = "string"
_TIME = "time"

Kind = Union[str, NumberKind, None]


def _normalise_kind(kind: Kind) -> Kind:
    if kind is None or isinstance(kind, NumberKind) or kind in (_STRING, _TIME):
        return kind
    return NumberKind(kind)


def rule_field(rule: str, name: Optional[str] = None, kind: Kind = None, **kwargs: Any) -> Any:
    """Declare a dataclass field carrying validation rules.

    ``rule`` is a ``;``-separated list such as ``"required;email"``; an empty
    rule or ``"-"`` disables checking. ``name`` is the name used in error
    messages. ``kind`` is ``"string"``, ``"time"`` or a :class:`NumberKind`
    (or its value); when omitted it is inferred from the runtime value.
    Remaining keyword arguments go to :func:`dataclasses.field`.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[_RULE] = rule
    metadata[_NAME] = name or ""
    metadata[_KIND] = _normalise_kind(kind)
    return dataclasses.field(metadata=metadata, **kwargs)


def _infer_kind(value: Any) -> Kind:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return _STRING
    if isinstance(value, int):
        return NumberKind.INT
    if isinstance(value, float):
        return NumberKind.FLOAT64
    if isinstance(value, _dt.datetime):
        return _TIME
    return None


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


class Validator(Generic[T]):
    """Validates the rule fields of a dataclass instance.

    Supported rules: ``required``, ``email``, ``date``, ``date=``, ``time``,
    ``datetime``, ``datetime=``, ``min<``, ``min<=``, ``max>``, ``max>=``,
    ``range=`` and ``length=``. Fields inherited from base dataclasses are
    checked like the class's own fields.
    """

    def __init__(self, data: T, *prefix_names: str) -> None:
        self._data = data
        self._prefix_names = list(prefix_names)
        self._formats = Formats()

    def email_format(self, pattern: str) -> "Validator[T]":
        """Set the default e-mail pattern."""
        self._formats = dataclasses.replace(self._formats, email=pattern)
        return self

    def date_format(self, pattern: str) -> "Validator[T]":
        """Set the default date pattern."""
        self._formats = dataclasses.replace(self._formats, date=pattern)
        return self

    def time_format(self, pattern: str) -> "Validator[T]":
        """Set the default time pattern."""
        self._formats = dataclasses.replace(self._formats, time=pattern)
        return self

    def datetime_format(self, pattern: str) -> "Validator[T]":
        """Set the default datetime pattern."""
        self._formats = dataclasses.replace(self._formats, datetime=pattern)
        return self

    def validate(self, *checks: Callable[[T], Any]) -> T:
        """Check every rule, then every extra check; return the data.

        An extra check fails by raising, or by returning an exception.
        """
        self._check_fields()
        for check in checks:
            outcome = check(self._data)
            if isinstance(outcome, BaseException):
                raise outcome
        return self._data

    def _field_name(self, name: str) -> str:
        return ".".join([*self._prefix_names, name])

    def _check_fields(self) -> None:
        data = self._data
        if not dataclasses.is_dataclass(data) or isinstance(data, type):
            raise ValidateError("不符合结构或指针")

        for field in dataclasses.fields(data):
            tag = field.metadata.get(_RULE, "")
            if tag in ("", "-"):
                continue
            label = field.metadata.get(_NAME) or _lower_first(type(data).__name__)
            field_name = self._field_name(label)
            value = getattr(data, field.name)
            kind = field.metadata.get(_KIND) or _infer_kind(value)
            for rule in tag.split(";"):
                self._check(rule, field_name, value, kind)

    def _check(self, rule: str, field_name: str, value: Any, kind: Kind) -> None:
        if value is None:
            if rule == "required":
                raise RequiredError(field_name)
            return
        if kind == _STRING:
            check_string(rule, field_name, value, self._formats)
        elif kind == _TIME:
            check_time(rule, field_name, value)
        elif isinstance(kind, NumberKind):
            check_number(rule, field_name, value, kind)