"""Tests for the command line interface."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from multihop_arbitrage import cli
from multihop_arbitrage.exceptions import (
    FeedUnavailableError,
    PartialExecutionError,
)
from multihop_arbitrage.models import HopReceipt
from multihop_arbitrage.pipeline import ArbitragePipeline, CycleReport, ScanResult

SHIPPED_CONFIG = str(
    Path(__file__).resolve().parents[2] / "configs" / "skale_arbitrage.yaml"
)


@pytest.fixture(autouse=True)
def logging_config():
    """main() reconfigures the root logger; leave it alone under test."""
    with patch.object(cli, "logging_config") as mock_logging_config:
        yield mock_logging_config


def test_verbose_selects_debug_logging(logging_config):
    cli._setup_logging(cli.parse_args(["-v", "quote"]))
    logging_config.setup_debug.assert_called_once()


def test_quiet_selects_minimal_logging(logging_config):
    cli._setup_logging(cli.parse_args(["--quiet", "quote"]))
    logging_config.setup_minimal.assert_called_once()


def test_parse_args_defaults():
    args = cli.parse_args(["quote"])

    assert args.command == "quote"
    assert args.config == cli.DEFAULT_CONFIG
    assert not args.verbose
    assert not args.quiet


def test_parse_args_run_live():
    args = cli.parse_args(["--config", "x.yaml", "-v", "run", "--live"])

    assert args.command == "run"
    assert args.live
    assert args.verbose
    assert args.config == "x.yaml"


def test_parse_args_requires_command():
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_verbose_and_quiet_exclusive():
    with pytest.raises(SystemExit):
        cli.parse_args(["-v", "--quiet", "quote"])


def test_missing_config_exits_1(capsys):
    assert cli.main(["--config", "/non/existent.yaml", "--quiet", "quote"]) == 1
    assert "Config error" in capsys.readouterr().err


@pytest.fixture
def pipeline():
    pipeline = Mock(spec=ArbitragePipeline)
    pipeline.quote = AsyncMock(return_value=CycleReport())
    pipeline.run_cycle = AsyncMock(return_value=CycleReport())
    pipeline.scan = AsyncMock(return_value=ScanResult(None, None, 5, 12))
    return pipeline


def _main(argv, pipeline):
    with patch.object(cli.ArbitragePipeline, "from_config", return_value=pipeline):
        return cli.main(["--config", SHIPPED_CONFIG, "--quiet"] + argv)


def test_quote(pipeline, capsys):
    assert _main(["quote"], pipeline) == 0
    pipeline.quote.assert_awaited_once()
    assert "No profitable path" in capsys.readouterr().out


def test_run_is_dry_by_default(pipeline):
    assert _main(["run"], pipeline) == 0
    pipeline.run_cycle.assert_awaited_once_with(execute=False)


def test_run_live(pipeline):
    assert _main(["run", "--live"], pipeline) == 0
    pipeline.run_cycle.assert_awaited_once_with(execute=True)


def test_scan(pipeline, capsys):
    assert _main(["scan"], pipeline) == 0
    assert "No profitable cycle" in capsys.readouterr().out


def test_cycle_failure_exits_1(pipeline):
    pipeline.quote.side_effect = FeedUnavailableError("down", source="coingecko")
    assert _main(["quote"], pipeline) == 1


def test_partial_execution_exits_2(pipeline, capsys):
    receipt = HopReceipt(0, "europa", "0xaaa", 100, 120_000, 10**8, 10**21)
    pipeline.run_cycle.side_effect = PartialExecutionError(
        "hop 2 failed", failed_index=1, completed=[receipt]
    )

    assert _main(["run", "--live"], pipeline) == 2
    assert "stopped at hop 2" in capsys.readouterr().err
