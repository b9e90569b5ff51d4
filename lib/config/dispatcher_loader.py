import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from lib.utils.validation import non_negative

from .yaml_loader import load_yaml

ENV_BUFFER_SERVICE = "BUFFER_SERVICE"
ENV_GENERATOR_SERVICE = "GENERATOR_SERVICE"
ENV_CLEANER_SERVICE = "CLEANER_SERVICE"
ENV_CONFIG_PATH = "DISPATCHER_CONFIG"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_REPORT_PATH = "REPORT_PATH"

DEFAULT_CONFIG_PATH = "config/dispatcher.yaml"


class ConfigError(ValueError):
    """Raised when the dispatcher configuration is incomplete or invalid."""


@dataclass
class TimingConfig:
    startup_delay: float = 3.0
    poll_interval: float = 1.0
    idle_backoff: float = 1.0
    error_backoff: float = 3.0


@dataclass
class DispatcherConfig:
    """Typed view over ``dispatcher.yaml`` merged with the environment.

    The service hosts are mandatory.  Everything else has a default so the
    YAML file itself is optional.
    """

    buffer_host: str
    generator_host: str
    cleaner_host: str
    timing: TimingConfig = field(default_factory=TimingConfig)
    request_timeout: float = 10.0
    log_level: str = "INFO"
    report_path: str = "statistics.txt"
    raw: Dict[str, Any] = field(default_factory=dict)


def load_dispatcher_config(
    path: Optional[str] = None, env: Optional[Mapping[str, str]] = None
) -> DispatcherConfig:
    """Load the dispatcher configuration.

    Parameters
    ----------
    path:
        YAML file to read.  Defaults to ``$DISPATCHER_CONFIG`` and then to
        ``config/dispatcher.yaml``.  A missing file is treated as empty.
    env:
        Environment mapping, ``os.environ`` when omitted.  Service hosts,
        log level and report path given here win over the file.
    """

    env = os.environ if env is None else env
    raw = load_yaml(path or env.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH)
    services = raw.get("services", {}) or {}
    section = raw.get("dispatcher", {}) or {}

    hosts = {
        "buffer": env.get(ENV_BUFFER_SERVICE) or services.get("buffer"),
        "generator": env.get(ENV_GENERATOR_SERVICE) or services.get("generator"),
        "cleaner": env.get(ENV_CLEANER_SERVICE) or services.get("cleaner"),
    }
    env_names = {
        "buffer": ENV_BUFFER_SERVICE,
        "generator": ENV_GENERATOR_SERVICE,
        "cleaner": ENV_CLEANER_SERVICE,
    }
    problems = [f"{env_names[k]} is not defined" for k, v in hosts.items() if not v]

    timing = TimingConfig()
    timing_raw = section.get("timing", {}) or {}
    request_timeout = 10.0
    try:
        for key in ("startup_delay", "poll_interval", "idle_backoff", "error_backoff"):
            if key in timing_raw:
                setattr(timing, key, non_negative(timing_raw[key], key))
        if "request_timeout" in section:
            request_timeout = non_negative(section["request_timeout"], "request_timeout")
    except ValueError as exc:
        problems.append(str(exc))

    if problems:
        raise ConfigError("; ".join(problems))

    return DispatcherConfig(
        buffer_host=hosts["buffer"],
        generator_host=hosts["generator"],
        cleaner_host=hosts["cleaner"],
        timing=timing,
        request_timeout=request_timeout,
        log_level=env.get(ENV_LOG_LEVEL) or section.get("log_level", "INFO"),
        report_path=env.get(ENV_REPORT_PATH) or section.get("report_path", "statistics.txt"),
        raw=raw,
    )
