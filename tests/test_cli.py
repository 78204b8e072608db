"""Tests for CLI entrypoints."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from garmin_status import cli
from garmin_status.config import Settings
from garmin_status.logger_config import setup_logging
from garmin_status.sources.garmin import SessionState
from garmin_status.supervisor import POLL_INTERVAL_S

ENV = {
    "GARMIN_USERNAME": "runner@example.com",
    "GARMIN_PASSWORD": "s3cret",
    "SLACK_TOKEN": "xoxp-123",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (*ENV, "EMOJI_BANDS", "ONE_SHOT", "DEBUG"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(cli, "load_dotenv", lambda *_args, **_kwargs: False)
    monkeypatch.setattr("sys.argv", ["prog"])


class _FakeSupervisor:
    def __init__(self, once_code: int = 0) -> None:
        self.once_code = once_code
        self.calls: list[str] = []
        self.interval = POLL_INTERVAL_S

    async def run_once(self) -> int:
        self.calls.append("once")
        return self.once_code

    async def run_forever(self) -> None:
        self.calls.append("forever")


def _patch_supervisor(
    monkeypatch: pytest.MonkeyPatch, fake: _FakeSupervisor
) -> list[Settings]:
    seen: list[Settings] = []

    def build(settings: Settings) -> Any:
        seen.append(settings)
        return fake

    monkeypatch.setattr(cli, "build_supervisor", build)
    return seen


def test_parse_args_defaults() -> None:
    ns = cli.parse_args()
    assert ns.once is False
    assert ns.debug is False
    assert ns.env_file is None


def test_parse_args_custom_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "sys.argv", ["prog", "--once", "--debug", "--env-file", "/tmp/x.env"]
    )
    ns = cli.parse_args()
    assert ns.once is True
    assert ns.debug is True
    assert ns.env_file == "/tmp/x.env"


def test_main_missing_config_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeSupervisor()
    seen = _patch_supervisor(monkeypatch, fake)
    assert cli.main() == 1
    assert seen == []
    assert fake.calls == []


@pytest.mark.parametrize("code", [0, 1])
def test_main_one_shot_returns_cycle_code(
    monkeypatch: pytest.MonkeyPatch, code: int
) -> None:
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("ONE_SHOT", "1")
    fake = _FakeSupervisor(once_code=code)
    _patch_supervisor(monkeypatch, fake)

    assert cli.main() == code
    assert fake.calls == ["once"]


def test_main_once_flag_overrides_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setattr("sys.argv", ["prog", "--once"])
    fake = _FakeSupervisor()
    seen = _patch_supervisor(monkeypatch, fake)

    assert cli.main() == 0
    assert fake.calls == ["once"]
    assert seen[0].one_shot is True
    assert seen[0].debug is False


def test_main_daemon_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    fake = _FakeSupervisor()
    _patch_supervisor(monkeypatch, fake)

    assert cli.main() == 0
    assert fake.calls == ["forever"]


def test_build_supervisor_does_not_open_browser() -> None:
    settings = Settings(username="u", password="p", slack_token="t")
    supervisor = cli.build_supervisor(settings)
    assert supervisor.session.state is SessionState.FRESH
    assert supervisor.interval == POLL_INTERVAL_S


def test_setup_logging_is_idempotent() -> None:
    logger = setup_logging(name="garmin_status.test_cli")
    setup_logging(debug=True, name="garmin_status.test_cli")
    try:
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.handlers[0].level == logging.DEBUG
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
