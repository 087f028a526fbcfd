"""Tests for the heart-monitor CLI."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from src.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _keep_test_logging():
    """Leave pytest's log capture in place instead of reconfiguring the root logger."""
    with patch("src.cli.setup_logging"):
        yield


class TestParse:
    def test_parses_labels(self, runner):
        result = runner.invoke(main, ["parse", "150", "1.5k", "❤️42"])

        assert result.exit_code == 0, result.output
        assert "'150' -> 150" in result.output
        assert "'1.5k' -> 1500" in result.output
        assert "'❤️42' -> 42" in result.output

    def test_unparseable_label(self, runner):
        result = runner.invoke(main, ["parse", "abc"])

        assert result.exit_code == 0
        assert "(ignored)" in result.output

    def test_requires_labels(self, runner):
        assert runner.invoke(main, ["parse"]).exit_code != 0


class TestTiers:
    def test_lists_default_tiers(self, runner):
        result = runner.invoke(main, ["tiers"])

        assert result.exit_code == 0, result.output
        assert "primary" in result.output
        assert "v > 599" in result.output
        assert "100 < v < 600" in result.output
        assert "puppeteer-sofi (priority 5)" in result.output
        assert "store capacity: 300" in result.output


class TestEvaluate:
    def test_dry_run_sequence(self, runner):
        result = runner.invoke(main, ["evaluate", "150", "150", "200", "650"])

        assert result.exit_code == 0, result.output
        lines = [line.strip() for line in result.output.splitlines() if line.strip()]
        outcomes = [line for line in lines if line.split(":")[0].isdigit()]
        assert outcomes[0].startswith("150: FIRE secondary -> mitsuisdiva")
        assert outcomes[1] == "150: unchanged"
        assert outcomes[2] == "200: no alert"
        assert outcomes[3].startswith("650: FIRE primary -> puppeteer-sofi")

    def test_sends_nothing(self, runner):
        with patch("src.alerts.channels.httpx.AsyncClient") as mock_client_cls:
            runner.invoke(main, ["evaluate", "650"])

        mock_client_cls.assert_not_called()


class TestRun:
    def test_requires_discord_settings(self, runner, monkeypatch):
        from src.config.settings import get_settings

        for name in ("BOT_TOKEN", "CHANNEL_ID", "GAME_BOT_ID"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir("/")
        get_settings.cache_clear()
        try:
            result = runner.invoke(main, ["run", "--no-metrics"])
        finally:
            get_settings.cache_clear()

        assert result.exit_code == 2
        assert "BOT_TOKEN" in result.output
