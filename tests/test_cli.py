"""Tests for the command-line entry point and its exit codes."""

import json
import logging

import pytest

from fip_monitor.acquisition.controller import AcquisitionFailure, AcquisitionPanic
from fip_monitor.agent import StartupDependencyError
from fip_monitor.cli import main as cli


def _write_config(tmp_path) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "bindIPAddress": "127.0.0.1",
        "peerIPAddress": "127.0.0.2",
        "floatingIPAddress": "203.0.113.10",
        "apiToken": "abc123",
    }), encoding="utf-8")
    return str(path)


def _fake_agent(error=None):
    class FakeAgent:
        def __init__(self, config):
            self.config = config

        async def run(self, stop_event=None):
            if error is not None:
                raise error

    return FakeAgent


class TestMain:
    def test_missing_config_exits_with_config_error(self, tmp_path):
        code = cli.main(["--config", str(tmp_path / "missing.json")])
        assert code == cli.EXIT_CONFIG_ERROR

    def test_invalid_config_exits_with_config_error(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"bindIPAddress": "127.0.0.1"}), encoding="utf-8")
        assert cli.main(["--config", str(path)]) == cli.EXIT_CONFIG_ERROR

    def test_startup_failure(self, tmp_path, monkeypatch):
        monkeypatch.setattr(
            cli, "FailoverAgent", _fake_agent(StartupDependencyError("no droplet id"))
        )
        assert cli.main(["--config", _write_config(tmp_path)]) == cli.EXIT_STARTUP_ERROR

    def test_panic(self, tmp_path, monkeypatch):
        failure = AcquisitionFailure("Floating IP assignment", RuntimeError("500"))
        monkeypatch.setattr(cli, "FailoverAgent", _fake_agent(AcquisitionPanic(3, failure)))
        assert cli.main(["--config", _write_config(tmp_path)]) == cli.EXIT_PANIC

    def test_clean_stop(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "FailoverAgent", _fake_agent())
        assert cli.main(["--config", _write_config(tmp_path)]) == cli.EXIT_OK

    def test_log_level_option(self):
        args = cli.build_parser().parse_args(["--log-level", "debug"])
        assert args.log_level == "debug"


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    logging.getLogger("httpcore").setLevel(logging.NOTSET)
