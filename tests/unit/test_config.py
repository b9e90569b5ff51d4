from pathlib import Path

import pytest

from lib.config.dispatcher_loader import ConfigError, load_dispatcher_config

SHIPPED_CONFIG = Path(__file__).resolve().parents[2] / "config" / "dispatcher.yaml"

HOSTS = {
    "BUFFER_SERVICE": "http://buffer:8000",
    "GENERATOR_SERVICE": "http://generator:8000",
    "CLEANER_SERVICE": "http://cleaner:8000",
}


def test_env_only_uses_defaults(tmp_path):
    cfg = load_dispatcher_config(str(tmp_path / "missing.yaml"), env=HOSTS)
    assert cfg.buffer_host == "http://buffer:8000"
    assert cfg.timing.error_backoff == 3.0
    assert cfg.timing.idle_backoff == 1.0
    assert cfg.report_path == "statistics.txt"


def test_missing_hosts_are_reported_together(tmp_path):
    with pytest.raises(ConfigError) as info:
        load_dispatcher_config(str(tmp_path / "missing.yaml"), env={"BUFFER_SERVICE": "x"})
    message = str(info.value)
    assert "GENERATOR_SERVICE is not defined" in message
    assert "CLEANER_SERVICE is not defined" in message
    assert "BUFFER_SERVICE" not in message


def test_yaml_values_and_env_overrides(tmp_path):
    path = tmp_path / "dispatcher.yaml"
    path.write_text(
        "services:\n"
        "  buffer: http://from-file:1\n"
        "  generator: http://from-file:2\n"
        "  cleaner: http://from-file:3\n"
        "dispatcher:\n"
        "  log_level: DEBUG\n"
        "  request_timeout: 2.5\n"
        "  timing:\n"
        "    poll_interval: 0\n"
        "    error_backoff: 5\n"
    )
    cfg = load_dispatcher_config(
        str(path), env={"CLEANER_SERVICE": "http://env:9", "REPORT_PATH": "out/report.txt"}
    )
    assert cfg.buffer_host == "http://from-file:1"
    assert cfg.cleaner_host == "http://env:9"
    assert cfg.timing.poll_interval == 0.0
    assert cfg.timing.error_backoff == 5.0
    assert cfg.request_timeout == 2.5
    assert cfg.log_level == "DEBUG"
    assert cfg.report_path == "out/report.txt"


def test_negative_timing_is_rejected(tmp_path):
    path = tmp_path / "dispatcher.yaml"
    path.write_text("dispatcher:\n  timing:\n    idle_backoff: -1\n")
    with pytest.raises(ConfigError, match="idle_backoff"):
        load_dispatcher_config(str(path), env=HOSTS)


def test_config_path_from_environment(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("dispatcher:\n  report_path: custom.txt\n")
    cfg = load_dispatcher_config(env={**HOSTS, "DISPATCHER_CONFIG": str(path)})
    assert cfg.report_path == "custom.txt"


def test_shipped_config_requires_service_hosts():
    with pytest.raises(ConfigError) as info:
        load_dispatcher_config(str(SHIPPED_CONFIG), env={})
    for name in HOSTS:
        assert f"{name} is not defined" in str(info.value)
