"""
faultline: runtime failure interception and routing.

Key primitives
--------------
- FailureEvent: normalized condition / raised-exception event
- Sink: capability every decorator and terminal implements
- HostBinding / bind(): hooks warnings, sys.excepthook and interpreter exit
- build_chain() / install(): compose the standard chain from InterceptConfig
"""

from faultline.version import __version__
from faultline.config import ConfigError, InterceptConfig
from faultline.events import ConditionRaised, FailureEvent, Severity, SeverityClass, classify
from faultline.sinks import Sink
from faultline.binding import HostBinding, HostBindingState, bind, trigger, unbind
from faultline.chain import build_chain, install

__all__ = [
    "__version__",
    "ConfigError",
    "InterceptConfig",
    "ConditionRaised",
    "FailureEvent",
    "Severity",
    "SeverityClass",
    "classify",
    "Sink",
    "HostBinding",
    "HostBindingState",
    "bind",
    "trigger",
    "unbind",
    "build_chain",
    "install",
]
