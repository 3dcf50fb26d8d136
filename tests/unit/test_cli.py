"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from keyloader.cli import (
    EXIT_CONFIG_ERROR,
    EXIT_NOT_UNLOCKED,
    EXIT_UNLOCKED,
    main,
    parse_args,
)
from keyloader.domain.models import KeyStatus
from keyloader.unlock.base import UnlockError


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("unlock:\n  dataset: rpool/data\n")
    return path


@pytest.fixture(autouse=True)
def _quiet_logging():  # type: ignore[no-untyped-def]
    with patch("keyloader.utils.logging.setup_logging"):
        yield


class TestParseArgs:
    def test_server_flags(self) -> None:
        args = parse_args(["server", "--listen", "127.0.0.1:9000", "--dataset", "rpool/x"])
        assert args.command == "server"
        assert args.listen == "127.0.0.1:9000"
        assert args.dataset == "rpool/x"

    def test_global_flags(self, tmp_path: Path) -> None:
        args = parse_args(["-v", "-c", str(tmp_path / "c.yaml"), "status"])
        assert args.verbose is True
        assert args.config == tmp_path / "c.yaml"
        assert args.command == "status"

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == EXIT_CONFIG_ERROR
        err = capsys.readouterr().err
        assert "usage: zfs-remote-keyloader" in err
        assert "server" in err


class TestServerCommand:
    def test_missing_dataset_is_config_error(self, tmp_path: Path) -> None:
        with patch("keyloader.server.app.run_server") as run:
            run.side_effect = lambda settings: settings.require_dataset()
            code = main(["-c", str(tmp_path / "none.yaml"), "server"])
        assert code == EXIT_CONFIG_ERROR

    def test_bad_listen_is_config_error(self, config_file: Path) -> None:
        with patch("keyloader.server.app.run_server") as run:
            code = main(["-c", str(config_file), "server", "--listen", "nope"])
        assert code == EXIT_CONFIG_ERROR
        run.assert_not_called()

    def test_flags_override_config(self, config_file: Path) -> None:
        with patch("keyloader.server.app.run_server", return_value=True) as run:
            code = main([
                "-c", str(config_file), "server",
                "--dataset", "tank/other", "--listen", "127.0.0.1:4000",
            ])
        assert code == EXIT_UNLOCKED
        settings = run.call_args.args[0]
        assert settings.unlock.dataset == "tank/other"
        assert settings.server.host == "127.0.0.1"
        assert settings.server.port == 4000

    def test_stopped_without_unlock(self, config_file: Path) -> None:
        with patch("keyloader.server.app.run_server", return_value=False):
            code = main(["-c", str(config_file), "server"])
        assert code == EXIT_NOT_UNLOCKED


class TestStatusCommand:
    def test_prints_status(
        self, config_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch(
            "keyloader.unlock.zfs.ZfsUnlockInvoker.key_status",
            return_value=KeyStatus.AVAILABLE,
        ):
            code = main(["-c", str(config_file), "status"])
        assert code == EXIT_UNLOCKED
        assert capsys.readouterr().out.strip() == "rpool/data: available"

    def test_status_error(self, config_file: Path) -> None:
        with patch(
            "keyloader.unlock.zfs.ZfsUnlockInvoker.key_status",
            side_effect=UnlockError("dataset rpool/data is not encrypted"),
        ):
            code = main(["-c", str(config_file), "status"])
        assert code == EXIT_NOT_UNLOCKED
