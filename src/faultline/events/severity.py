"""Native severity codes and their classification into severity classes."""

from __future__ import annotations

from enum import Enum, IntFlag
from typing import Dict, Type


class Severity(IntFlag):
    """Bit-flag severity codes, one bit per native failure type."""

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    STRICT = 2048
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384
    ALL = 32767


class SeverityClass(str, Enum):
    """Bucket a native code falls into."""
    FATAL = "fatal"
    RECOVERABLE_ERROR = "recoverable_error"
    WARNING = "warning"
    NOTICE = "notice"
    DEPRECATION = "deprecation"
    UNKNOWN = "unknown"


FATAL_MASK = Severity.ERROR | Severity.PARSE | Severity.CORE_ERROR | Severity.COMPILE_ERROR
WARNINGS = Severity.WARNING | Severity.CORE_WARNING | Severity.COMPILE_WARNING | Severity.USER_WARNING
NOTICES = Severity.NOTICE | Severity.USER_NOTICE | Severity.STRICT
DEPRECATIONS = Severity.DEPRECATED | Severity.USER_DEPRECATED
USER_ORIGINATED = (
    Severity.USER_ERROR | Severity.USER_WARNING | Severity.USER_NOTICE | Severity.USER_DEPRECATED
)

_CONSTANTS: Dict[int, str] = {
    int(Severity.ERROR): "E_ERROR",
    int(Severity.WARNING): "E_WARNING",
    int(Severity.PARSE): "E_PARSE",
    int(Severity.NOTICE): "E_NOTICE",
    int(Severity.CORE_ERROR): "E_CORE_ERROR",
    int(Severity.CORE_WARNING): "E_CORE_WARNING",
    int(Severity.COMPILE_ERROR): "E_COMPILE_ERROR",
    int(Severity.COMPILE_WARNING): "E_COMPILE_WARNING",
    int(Severity.USER_ERROR): "E_USER_ERROR",
    int(Severity.USER_WARNING): "E_USER_WARNING",
    int(Severity.USER_NOTICE): "E_USER_NOTICE",
    int(Severity.STRICT): "E_STRICT",
    int(Severity.RECOVERABLE_ERROR): "E_RECOVERABLE_ERROR",
    int(Severity.DEPRECATED): "E_DEPRECATED",
    int(Severity.USER_DEPRECATED): "E_USER_DEPRECATED",
    int(Severity.ALL): "E_ALL",
}

_NAMES: Dict[int, str] = {
    int(Severity.ERROR): "Fatal Error",
    int(Severity.WARNING): "Warning",
    int(Severity.PARSE): "Parse Error",
    int(Severity.NOTICE): "Notice",
    int(Severity.CORE_ERROR): "Core Error",
    int(Severity.CORE_WARNING): "Core Warning",
    int(Severity.COMPILE_ERROR): "Compile Error",
    int(Severity.COMPILE_WARNING): "Compile Warning",
    int(Severity.USER_ERROR): "User Error",
    int(Severity.USER_WARNING): "User Warning",
    int(Severity.USER_NOTICE): "User Notice",
    int(Severity.STRICT): "Strict Standards",
    int(Severity.RECOVERABLE_ERROR): "Recoverable Error",
    int(Severity.DEPRECATED): "Deprecated",
    int(Severity.USER_DEPRECATED): "User Deprecated",
}

_CLASSES: Dict[int, SeverityClass] = {
    int(Severity.USER_ERROR): SeverityClass.RECOVERABLE_ERROR,
    int(Severity.RECOVERABLE_ERROR): SeverityClass.RECOVERABLE_ERROR,
}
for _code in (Severity.WARNING, Severity.CORE_WARNING, Severity.COMPILE_WARNING, Severity.USER_WARNING):
    _CLASSES[int(_code)] = SeverityClass.WARNING
for _code in (Severity.NOTICE, Severity.USER_NOTICE, Severity.STRICT):
    _CLASSES[int(_code)] = SeverityClass.NOTICE
for _code in (Severity.DEPRECATED, Severity.USER_DEPRECATED):
    _CLASSES[int(_code)] = SeverityClass.DEPRECATION


def is_fatal(code: int) -> bool:
    """Return True if the code denotes imminent process termination."""
    return bool(int(code) & FATAL_MASK)


def is_user_originated(code: int) -> bool:
    """Return True for codes raised by user-level calls rather than the runtime."""
    return bool(int(code) & USER_ORIGINATED)


def classify(code: int) -> SeverityClass:
    """
    Map a native severity code onto its SeverityClass.

    Total and deterministic: codes that are neither fatal nor one of the known
    single-bit codes land in ``SeverityClass.UNKNOWN``, which is never fatal.

    Usage example
    -------------
        classify(Severity.USER_NOTICE)   # SeverityClass.NOTICE
        classify(Severity.PARSE)         # SeverityClass.FATAL
        classify(1 << 20)                # SeverityClass.UNKNOWN
    """
    if is_fatal(code):
        return SeverityClass.FATAL
    return _CLASSES.get(int(code), SeverityClass.UNKNOWN)


def severity_constant(code: int) -> str:
    """Return the constant name of a code (``"E_WARNING"``), or ``"E_?"``."""
    return _CONSTANTS.get(int(code), "E_?")


def severity_name(code: int) -> str:
    """Return the human-readable name of a code, or ``"Unknown Error"``."""
    return _NAMES.get(int(code), "Unknown Error")


def severity_for_warning(category: Type[Warning]) -> Severity:
    """Map a ``warnings`` category onto the native code used for conditions."""
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning, FutureWarning)):
        return Severity.DEPRECATED
    if issubclass(category, SyntaxWarning):
        return Severity.COMPILE_WARNING
    if issubclass(category, (ResourceWarning, ImportWarning)):
        return Severity.NOTICE
    if category is UserWarning:
        return Severity.USER_WARNING
    return Severity.WARNING
