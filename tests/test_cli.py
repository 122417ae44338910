"""Command line exit codes and read-only commands"""

import json

import pytest

from lp_rebalancer.cli import main as cli
from lp_rebalancer.core.config import BotConfig

from test_config import ENV


def test_check_config_prints_redacted(monkeypatch, capsys):
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)
    original = BotConfig.from_env.__func__
    monkeypatch.setattr(BotConfig, "from_env", classmethod(lambda cls: original(cls, load_files=False)))

    cli.main(["check-config"])

    shown = json.loads(capsys.readouterr().out)
    assert shown["private_key"] == "***"
    assert shown["pool_address"] == ENV["POOL_ADDRESS"]


def test_config_error_exits_2(monkeypatch):
    for name in ENV:
        monkeypatch.delenv(name, raising=False)
    original = BotConfig.from_env.__func__
    monkeypatch.setattr(BotConfig, "from_env", classmethod(lambda cls: original(cls, load_files=False)))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["check-config"])
    assert excinfo.value.code == 2


def test_no_command_prints_help():
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 1
