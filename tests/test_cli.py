"""Tests for the operator CLI (memory backend)."""

import importlib.util
import json
from pathlib import Path

import pytest


CLI_PATH = Path(__file__).resolve().parents[1] / "scripts" / "cli" / "tinylink_cli.py"


@pytest.fixture
def cli(monkeypatch):
    """Load the CLI module with an in-memory backend configured."""
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.delenv("REDIS_URL", raising=False)

    module_spec = importlib.util.spec_from_file_location("tinylink_cli", CLI_PATH)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class TestCLI:
    """Test CLI commands."""

    @pytest.mark.asyncio
    async def test_shorten(self, cli, capsys):
        exit_code = await cli.main(["shorten", "https://example.com/cli"])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["success"] is True
        assert output["long_url"] == "https://example.com/cli"
        assert len(output["short_code"]) == 6

    @pytest.mark.asyncio
    async def test_invalid_url(self, cli, capsys):
        exit_code = await cli.main(["shorten", "not-a-url"])

        assert exit_code == 1
        error = json.loads(capsys.readouterr().err)
        assert error["success"] is False
        assert "Invalid URL" in error["error"]

    @pytest.mark.asyncio
    async def test_stats_missing(self, cli, capsys):
        assert await cli.main(["stats", "nothere"]) == 1
        assert "not found" in json.loads(capsys.readouterr().err)["error"]

    @pytest.mark.asyncio
    async def test_sweep_and_health(self, cli, capsys):
        assert await cli.main(["sweep"]) == 0
        assert json.loads(capsys.readouterr().out)["deleted"] == 0

        assert await cli.main(["health"]) == 0
        assert json.loads(capsys.readouterr().out)["health"]["overall"] is True

    @pytest.mark.asyncio
    async def test_no_command(self, cli):
        assert await cli.main([]) == 1
