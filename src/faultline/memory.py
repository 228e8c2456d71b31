from __future__ import annotations

import logging
import sys

if sys.platform != "win32":
    import resource
else:  # no rlimits on Windows
    resource = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def raise_memory_ceiling() -> bool:
    """
    Lift the address-space soft limit up to the hard limit.

    Best-effort: returns False when the platform or the limits do not allow it.
    Called on the reporting path so that a process dying of memory
    exhaustion can still build and send its report.
    """
    if resource is None:
        return False
    try:
        soft, hard = resource.getrlimit(resource.RLIMIT_AS)
        if soft != hard:
            resource.setrlimit(resource.RLIMIT_AS, (hard, hard))
    except (ValueError, OSError) as error:
        logger.debug("Could not raise memory ceiling: %s", error)
        return False
    return True
