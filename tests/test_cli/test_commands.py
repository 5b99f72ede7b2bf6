"""Tests for the pagesync CLI commands."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
import structlog
from click.testing import CliRunner

from pagesync.cli import main
from pagesync.config.settings import get_settings
from pagesync.sync.schemas import SyncResult, SyncStatus, SyncSummary


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def registry(tmp_path) -> str:
    path = tmp_path / "datasources.json"
    path.write_text(
        json.dumps(
            [
                {"alias": "blog", "data_source_id": "ds-blog"},
                {"alias": "docs", "data_source_id": "ds-docs"},
            ]
        )
    )
    return str(path)


def _result(status: SyncStatus) -> SyncResult:
    return SyncResult(
        since=None,
        summaries=[SyncSummary(alias="blog", data_source_id="ds-blog", processed=3, status=status)],
    )


class TestSyncCommand:
    """Test the `sync` command."""

    def test_sync_success(self, runner: CliRunner, registry: str) -> None:
        mock_db = AsyncMock()
        sync = AsyncMock(return_value=_result(SyncStatus.SUCCESS))

        with patch("pagesync.storage.database.Database", return_value=mock_db), patch(
            "pagesync.sync.service.sync_from_provider", sync
        ):
            result = runner.invoke(main, ["sync", "--registry", registry, "-d", "blog", "--all"])

        assert result.exit_code == 0, result.output
        assert "blog: success" in result.output
        assert sync.call_args.kwargs["datasource"] == "blog"
        assert sync.call_args.kwargs["sync_all"] is True
        mock_db.close.assert_awaited_once()

    def test_since_passed_as_utc(self, runner: CliRunner, registry: str) -> None:
        sync = AsyncMock(return_value=_result(SyncStatus.SUCCESS))

        with patch("pagesync.storage.database.Database", return_value=AsyncMock()), patch(
            "pagesync.sync.service.sync_from_provider", sync
        ):
            result = runner.invoke(main, ["sync", "--registry", registry, "--since", "2024-05-01"])

        assert result.exit_code == 0, result.output
        assert sync.call_args.kwargs["since"] == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_sync_json_output(self, runner: CliRunner, registry: str) -> None:
        sync = AsyncMock(return_value=_result(SyncStatus.SUCCESS))

        with patch("pagesync.storage.database.Database", return_value=AsyncMock()), patch(
            "pagesync.sync.service.sync_from_provider", sync
        ):
            result = runner.invoke(main, ["sync", "--registry", registry, "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["summaries"][0]["processed"] == 3

    def test_sync_error_exit_code(self, runner: CliRunner, registry: str) -> None:
        sync = AsyncMock(return_value=_result(SyncStatus.ERROR))

        with patch("pagesync.storage.database.Database", return_value=AsyncMock()), patch(
            "pagesync.sync.service.sync_from_provider", sync
        ):
            result = runner.invoke(main, ["sync", "--registry", registry])

        assert result.exit_code == 1

    def test_missing_registry(self, runner: CliRunner, tmp_path) -> None:
        with patch("pagesync.storage.database.Database", return_value=AsyncMock()):
            result = runner.invoke(main, ["sync", "--registry", str(tmp_path / "none.json")])

        assert result.exit_code == 2

    def test_wipe_requires_confirmation(self, runner: CliRunner, registry: str) -> None:
        sync = AsyncMock(return_value=_result(SyncStatus.SUCCESS))

        with patch("pagesync.storage.database.Database", return_value=AsyncMock()), patch(
            "pagesync.sync.service.sync_from_provider", sync
        ):
            result = runner.invoke(main, ["sync", "--registry", registry, "--wipe"], input="n\n")

        assert result.exit_code != 0
        sync.assert_not_called()


class TestListDatasources:
    """Test the `list-datasources` command."""

    def test_lists_aliases(self, runner: CliRunner, registry: str) -> None:
        result = runner.invoke(main, ["list-datasources", "--registry", registry])

        assert result.exit_code == 0, result.output
        assert "2 datasource(s)" in result.output
        assert "ds-docs" in result.output

    def test_counts(self, runner: CliRunner, registry: str) -> None:
        mock_db = AsyncMock()
        mock_db.fetchval.return_value = 7

        with patch("pagesync.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["list-datasources", "--registry", registry, "--counts"])

        assert result.exit_code == 0, result.output
        assert "records=7" in result.output


class TestInitDb:
    def test_creates_table(self, runner: CliRunner) -> None:
        mock_db = AsyncMock()

        with patch("pagesync.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        assert "initialized" in result.output
        assert "CREATE TABLE IF NOT EXISTS pages" in mock_db.execute.call_args_list[0].args[0]


class TestDebugFlag:
    def test_debug_sets_log_level(self, runner: CliRunner, registry: str, monkeypatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "INFO")

        result = runner.invoke(main, ["--debug", "list-datasources", "--registry", registry])

        assert result.exit_code == 0, result.output
        assert get_settings().log_level == "DEBUG"
