import pytest

from faultline.events.severity import (
    Severity,
    SeverityClass,
    classify,
    is_fatal,
    is_user_originated,
    severity_constant,
    severity_for_warning,
    severity_name,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (Severity.ERROR, SeverityClass.FATAL),
        (Severity.PARSE, SeverityClass.FATAL),
        (Severity.CORE_ERROR, SeverityClass.FATAL),
        (Severity.COMPILE_ERROR, SeverityClass.FATAL),
        (Severity.USER_ERROR, SeverityClass.RECOVERABLE_ERROR),
        (Severity.RECOVERABLE_ERROR, SeverityClass.RECOVERABLE_ERROR),
        (Severity.WARNING, SeverityClass.WARNING),
        (Severity.USER_WARNING, SeverityClass.WARNING),
        (Severity.COMPILE_WARNING, SeverityClass.WARNING),
        (Severity.NOTICE, SeverityClass.NOTICE),
        (Severity.USER_NOTICE, SeverityClass.NOTICE),
        (Severity.STRICT, SeverityClass.NOTICE),
        (Severity.DEPRECATED, SeverityClass.DEPRECATION),
        (Severity.USER_DEPRECATED, SeverityClass.DEPRECATION),
    ],
)
def test_classify_known_codes(code: Severity, expected: SeverityClass) -> None:
    assert classify(code) == expected


def test_classify_is_total_and_unknown_is_never_fatal() -> None:
    for code in range(0, 1 << 17):
        cls = classify(code)
        assert isinstance(cls, SeverityClass)
        if cls == SeverityClass.FATAL:
            assert is_fatal(code)
    assert classify(1 << 20) == SeverityClass.UNKNOWN
    assert classify(0) == SeverityClass.UNKNOWN
    # mixed non-fatal bits are not a single known code
    assert classify(Severity.WARNING | Severity.NOTICE) == SeverityClass.UNKNOWN


def test_classify_is_deterministic() -> None:
    assert [classify(c) for c in range(64)] == [classify(c) for c in range(64)]


def test_user_originated() -> None:
    assert is_user_originated(Severity.USER_NOTICE)
    assert is_user_originated(Severity.USER_DEPRECATED)
    assert not is_user_originated(Severity.WARNING)
    assert not is_user_originated(Severity.ERROR)


def test_constant_and_name_fallbacks() -> None:
    assert severity_constant(Severity.WARNING) == "E_WARNING"
    assert severity_name(Severity.ERROR) == "Fatal Error"
    assert severity_constant(3) == "E_?"
    assert severity_name(1 << 20) == "Unknown Error"


def test_severity_for_warning_categories() -> None:
    assert severity_for_warning(DeprecationWarning) == Severity.DEPRECATED
    assert severity_for_warning(FutureWarning) == Severity.DEPRECATED
    assert severity_for_warning(UserWarning) == Severity.USER_WARNING
    assert severity_for_warning(RuntimeWarning) == Severity.WARNING
    assert severity_for_warning(ResourceWarning) == Severity.NOTICE
    assert severity_for_warning(SyntaxWarning) == Severity.COMPILE_WARNING

    class CustomWarning(UserWarning):
        pass

    assert severity_for_warning(CustomWarning) == Severity.WARNING
