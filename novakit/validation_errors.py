"""Exceptions raised when a value breaks a validation rule."""

from __future__ import annotations

from typing import Optional


class ValidateError(Exception):
    """Base of every validation failure.

    ``ValidateError(detail)`` builds the message from the class template;
    ``ValidateError()`` carries the class's default message.
    """

    default_message = "验证错误"
    template: Optional[str] = None

    def __init__(self, detail: Optional[str] = None) -> None:
        if detail is None:
            message = self.default_message
        else:
            message = self._compose(str(detail))
        super().__init__(message)
        self.detail = detail

    def _compose(self, detail: str) -> str:
        if self.template is None:
            return "：".join(part for part in (self.default_message, detail) if part)
        return self.template.format(detail)

    @property
    def message(self) -> str:
        return self.args[0]

    def __str__(self) -> str:
        return self.args[0]

    @classmethod
    def with_message(cls, message: str) -> "ValidateError":
        """Create an error that carries ``message`` exactly as given."""
        error = cls()
        error.args = (message,)
        return error

    @classmethod
    def wrap(cls, cause: Optional[BaseException]) -> "ValidateError":
        """Create an error describing ``cause`` and chained to it."""
        if cause is None:
            return cls()
        error = cls(str(cause))
        error.__cause__ = cause
        return error


class RequiredError(ValidateError):
    """A required value is missing."""

    default_message = "缺少必填项目"
    template = "[{}]必填"


class EmailError(ValidateError):
    """A value is not a valid e-mail address."""

    default_message = "邮箱格式错误"
    template = "[{}]不是有效的邮箱格式"


class TimeError(ValidateError):
    """A value is not a valid date, time or datetime."""

    default_message = "时间格式错误"
    template = "[{}]不是有效的邮箱格式"


class LengthError(ValidateError):
    """A length or numeric bound is broken."""

    default_message = "长度错误"
    template = "[{}]长度错误"


class RuleError(ValidateError):
    """A rule is itself malformed."""

    default_message = "规则错误"
    template = "[{}]规则错误"