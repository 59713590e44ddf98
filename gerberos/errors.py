"""Exceptions raised by the package."""


class GerberosError(Exception):
    """Base error; a given detail follows the default message after a colon."""

    default_message = ""

    def __init__(self, detail: object = None) -> None:
        parts = [p for p in (self.default_message, detail) if p not in (None, "")]
        super().__init__(": ".join(str(p) for p in parts))
        self.detail = detail


class RuleError(GerberosError):
    """A rule is configured incorrectly."""


class MissingSourceError(RuleError):
    default_message = "missing source"


class EmptySourceError(RuleError):
    default_message = "empty source"


class UnknownSourceError(RuleError):
    default_message = "unknown source"


class MissingActionError(RuleError):
    default_message = "missing action"


class EmptyActionError(RuleError):
    default_message = "empty action"


class UnknownActionError(RuleError):
    default_message = "unknown action"


class MissingIntervalParameterError(RuleError):
    default_message = "missing interval parameter"


class InvalidIntervalParameterError(RuleError):
    default_message = "failed to parse interval parameter"


class MissingRegexpError(RuleError):
    default_message = "missing regexp"


class EmptyRegexpError(RuleError):
    default_message = "empty regexp"


class MissingCountParameterError(RuleError):
    default_message = "missing count parameter"


class InvalidCountParameterError(RuleError):
    default_message = "failed to parse count parameter"


class MatchError(GerberosError):
    """A line could not be turned into a match."""


class FaultError(GerberosError):
    """A deliberately injected fault."""

    default_message = "fault"