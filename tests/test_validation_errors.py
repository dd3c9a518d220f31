import pytest

from novakit.validation_errors import (
    EmailError,
    LengthError,
    RequiredError,
    RuleError,
    TimeError,
    ValidateError,
)


@pytest.mark.parametrize(
    "cls, expected",
    [
        (ValidateError, "验证错误"),
        (RequiredError, "缺少必填项目"),
        (EmailError, "邮箱格式错误"),
        (TimeError, "时间格式错误"),
        (LengthError, "长度错误"),
        (RuleError, "规则错误"),
    ],
)
def test_default_messages(cls, expected):
    assert str(cls()) == expected
    assert cls().message == expected


def test_validate_error_joins_detail():
    assert str(ValidateError("bad")) == "验证错误：bad"


def test_validate_error_skips_empty_detail():
    assert str(ValidateError("")) == "验证错误"


@pytest.mark.parametrize("cls", [RequiredError, EmailError, TimeError, LengthError, RuleError])
def test_templated_messages_wrap_field_name(cls):
    error = cls("名称")
    assert str(error).startswith("[名称]")
    assert error.detail == "名称"


def test_templates_differ_between_kinds():
    length = str(LengthError("x"))
    rule = str(RuleError("x"))
    assert length.startswith("[x]") and rule.startswith("[x]")
    assert length != rule


def test_all_errors_are_validate_errors():
    errors = [
        RequiredError("field"),
        EmailError("field"),
        TimeError("field"),
        LengthError("field"),
        RuleError("field"),
    ]
    for error in errors:
        with pytest.raises(ValidateError) as info:
            raise error
        assert info.value is error
        assert info.value.detail == "field"
        assert str(info.value).startswith("[field]")


def test_with_message_keeps_text_and_class():
    error = LengthError.with_message("custom text")
    assert str(error) == "custom text"
    assert error.message == "custom text"
    assert error.detail is None
    with pytest.raises(LengthError) as exc:
        raise error
    assert exc.value is error


def test_wrap_chains_cause():
    cause = ValueError("boom")
    error = RequiredError.wrap(cause)
    assert error.__cause__ is cause
    assert "boom" in str(error)
    assert str(error) == str(RequiredError("boom"))


def test_wrap_without_cause_uses_default():
    assert str(RuleError.wrap(None)) == "规则错误"