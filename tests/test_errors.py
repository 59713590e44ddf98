import pytest

from gerberos.errors import (
    EmptyActionError,
    EmptyRegexpError,
    EmptySourceError,
    FaultError,
    GerberosError,
    InvalidCountParameterError,
    InvalidIntervalParameterError,
    MatchError,
    MissingActionError,
    MissingCountParameterError,
    MissingIntervalParameterError,
    MissingRegexpError,
    MissingSourceError,
    RuleError,
    UnknownActionError,
    UnknownSourceError,
)


@pytest.mark.parametrize(
    ("cls", "message"),
    [
        (MissingSourceError, "missing source"),
        (EmptySourceError, "empty source"),
        (UnknownSourceError, "unknown source"),
        (MissingActionError, "missing action"),
        (EmptyActionError, "empty action"),
        (UnknownActionError, "unknown action"),
        (MissingIntervalParameterError, "missing interval parameter"),
        (InvalidIntervalParameterError, "failed to parse interval parameter"),
        (MissingRegexpError, "missing regexp"),
        (EmptyRegexpError, "empty regexp"),
        (MissingCountParameterError, "missing count parameter"),
        (InvalidCountParameterError, "failed to parse count parameter"),
        (FaultError, "fault"),
    ],
)
def test_default_messages(cls, message):
    assert str(cls()) == message


def test_detail_is_appended_after_default_message():
    error = UnknownSourceError("unknown")
    assert str(error) == "unknown source: unknown"
    assert error.detail == "unknown"


def test_detail_alone_when_no_default_message():
    error = RuleError("superfluous parameter(s)")
    assert str(error) == "superfluous parameter(s)"


@pytest.mark.parametrize(
    ("cls", "detail", "message"),
    [
        (MissingSourceError, None, "missing source"),
        (UnknownActionError, "unknown", "unknown action: unknown"),
        (InvalidCountParameterError, "must be > 1", "failed to parse count parameter: must be > 1"),
    ],
)
def test_rule_errors_share_a_base(cls, detail, message):
    error = cls() if detail is None else cls(detail)
    assert str(error) == message
    assert isinstance(error, RuleError)
    assert isinstance(error, GerberosError)


def test_match_error_is_not_a_rule_error():
    error = MatchError('line "x" does not match any regexp')
    assert 'line "x" does not match any regexp' in str(error)
    assert isinstance(error, GerberosError)
    assert not isinstance(error, RuleError)


def test_errors_can_be_caught_by_base():
    error = InvalidCountParameterError("must be > 1")
    assert str(error) == "failed to parse count parameter: must be > 1"
    assert error.detail == "must be > 1"
    assert isinstance(error, GerberosError)