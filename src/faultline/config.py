from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional
import os
import uuid

import yaml

from faultline.events import Severity


class ConfigError(ValueError):
    """Raised when required runtime configuration is missing or invalid."""


_TRUTHY_OFF = ("0", "false", "False", "no", "off", "")
_NUMERIC_SETTINGS = (
    ("sample_rate", float),
    ("max_items", int),
    ("max_string", int),
    ("console_level", int),
    ("file_level", int),
)


def load_config(root: Path) -> dict[str, Any]:
    """
    Load faultline settings from a YAML file in ``root`` if present.

    Search order:
    1) ``faultline.yaml``
    2) ``config.yaml`` (the ``faultline`` section only)
    """
    own = root / "faultline.yaml"
    if own.exists():
        data = yaml.safe_load(own.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{own} must contain a mapping, got {type(data).__name__}")
        return data

    shared = root / "config.yaml"
    if shared.exists():
        data = yaml.safe_load(shared.read_text(encoding="utf-8")) or {}
        section = data.get("faultline") if isinstance(data, dict) else None
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"'faultline' section of {shared} must be a mapping")
        return section
    return {}


def _parse_mask(raw: Any) -> int:
    """Accept an int, a numeric string, or ``"WARNING|USER_WARNING"`` style names."""
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if text.isdigit():
        return int(text)
    mask = 0
    for name in text.split("|"):
        name = name.strip().upper()
        if name.startswith("E_"):
            name = name[2:]
        try:
            mask |= Severity[name]
        except KeyError as error:
            raise ConfigError(f"Unknown severity name: {name!r}") from error
    return int(mask)


@dataclass(frozen=True)
class InterceptConfig:
    """
    Configuration for interception, routing and logging.

    Parameters
    ----------
    log_dir
        Directory where log files and JSONL event logs are written.
    run_id
        Unique identifier for the process run. If "auto", a UUID4 is generated.
    console_level
        Logging level for console output.
    file_level
        Logging level for file output.
    write_jsonl
        If True, failures are also written to <log_dir>/events_<run_id>.jsonl.
    severity_mask
        Conditions outside this mask are dropped (fatal ones never are).
    sample_rate
        Probability that a non-fatal condition is kept.
    deduplicate
        Drop repeats of the same non-fatal failure.
    rethrow
        Raise non-fatal conditions as ``ConditionRaised`` instead of reporting them.
    rethrow_unsafe
        The hosting runtime cannot unwind out of a condition handler; terminate instead.
    only_enabled
        With ``rethrow``, only raise conditions inside ``severity_mask``.
    diagnostic_page
        Show the full introspection page instead of the generic crash page.
    project_root
        Root used to shorten file paths in rendered artifacts.
    artifact_dir
        Local directory for crash artifacts, if any.
    max_items, max_string
        Bounds on captured container sizes and string lengths in artifacts.
    env_prefix
        Prefix for environment-variable overrides, e.g. "FAULTLINE_".

    Usage example
    -------------
        cfg = InterceptConfig(log_dir=Path("logs"), sample_rate=0.1)
    """

    log_dir: Path = Path("logs")
    run_id: str = "auto"

    console_level: int = 30  # logging.WARNING
    file_level: int = 10  # logging.DEBUG
    write_jsonl: bool = True

    severity_mask: int = int(Severity.ALL)
    sample_rate: float = 1.0
    deduplicate: bool = True
    rethrow: bool = False
    rethrow_unsafe: bool = False
    only_enabled: bool = False

    diagnostic_page: bool = False
    project_root: Path = Path(".")
    artifact_dir: Optional[Path] = None
    max_items: int = 20
    max_string: int = 200

    env_prefix: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ConfigError(f"sample_rate must be within [0, 1], got {self.sample_rate!r}")
        if self.max_items < 1 or self.max_string < 1:
            raise ConfigError("max_items and max_string must be positive")

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:12]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InterceptConfig":
        """Build a config from a plain mapping, e.g. the result of ``load_config``."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown faultline settings: {', '.join(unknown)}")

        kwargs: dict[str, Any] = dict(data)
        for key in ("log_dir", "project_root", "artifact_dir"):
            if kwargs.get(key) is not None:
                kwargs[key] = Path(kwargs[key])
        for key, kind in _NUMERIC_SETTINGS:
            if key in kwargs:
                try:
                    kwargs[key] = kind(kwargs[key])
                except (TypeError, ValueError) as error:
                    raise ConfigError(f"{key} must be a number, got {kwargs[key]!r}") from error
        if "severity_mask" in kwargs:
            kwargs["severity_mask"] = _parse_mask(kwargs["severity_mask"])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, *, default: Optional["InterceptConfig"] = None) -> "InterceptConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>LOG_DIR: path
        - <PFX>WRITE_JSONL: "1"/"0"
        - <PFX>SEVERITY_MASK: integer or "WARNING|USER_WARNING"
        - <PFX>SAMPLE_RATE: float in [0, 1]
        - <PFX>RETHROW, <PFX>RETHROW_UNSAFE, <PFX>DIAGNOSTIC_PAGE: "1"/"0"
        - <PFX>PROJECT_ROOT, <PFX>ARTIFACT_DIR: paths

        Notes
        -----
        Invalid values fall back to the value on `default`.

        Usage example
        -------------
            cfg = InterceptConfig.from_env(default=InterceptConfig(env_prefix="FAULTLINE_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        def _flag(name: str, current: bool) -> bool:
            raw = os.getenv(f"{pfx}{name}")
            if raw is None:
                return current
            return raw.strip() not in _TRUTHY_OFF

        log_dir = Path(os.getenv(f"{pfx}LOG_DIR", str(base.log_dir)))

        severity_mask = base.severity_mask
        mask_raw = os.getenv(f"{pfx}SEVERITY_MASK", "")
        if mask_raw.strip():
            try:
                severity_mask = _parse_mask(mask_raw)
            except ConfigError:
                severity_mask = base.severity_mask

        sample_rate = base.sample_rate
        rate_raw = os.getenv(f"{pfx}SAMPLE_RATE", "")
        if rate_raw.strip():
            try:
                candidate = float(rate_raw)
            except ValueError:
                candidate = base.sample_rate
            if 0.0 <= candidate <= 1.0:
                sample_rate = candidate

        project_root = Path(os.getenv(f"{pfx}PROJECT_ROOT", str(base.project_root)))
        artifact_raw = os.getenv(f"{pfx}ARTIFACT_DIR", "")
        artifact_dir = Path(artifact_raw) if artifact_raw.strip() else base.artifact_dir

        return cls(
            log_dir=log_dir,
            run_id=base.run_id,
            console_level=base.console_level,
            file_level=base.file_level,
            write_jsonl=_flag("WRITE_JSONL", base.write_jsonl),
            severity_mask=severity_mask,
            sample_rate=sample_rate,
            deduplicate=_flag("DEDUPLICATE", base.deduplicate),
            rethrow=_flag("RETHROW", base.rethrow),
            rethrow_unsafe=_flag("RETHROW_UNSAFE", base.rethrow_unsafe),
            only_enabled=_flag("ONLY_ENABLED", base.only_enabled),
            diagnostic_page=_flag("DIAGNOSTIC_PAGE", base.diagnostic_page),
            project_root=project_root,
            artifact_dir=artifact_dir,
            max_items=base.max_items,
            max_string=base.max_string,
            env_prefix=pfx,
        )
