"""Tests for the command line entry point."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pushgate.__main__ import (
    EXIT_CONFIG_ERROR,
    EXIT_DELIVERY_FAILED,
    EXIT_SUCCESS,
    format_report,
    main,
    parse_arguments,
)
from pushgate.core.notification import DeliveryResults, Notification
from pushgate.core.status import StatusCode
from tests.fixtures.gateway_mocks import ScriptedGateway, error_response, make_token


@pytest.fixture
def config_path(tmp_path: Path, certificate_file: Path) -> Path:
    path = tmp_path / "pushgate.yaml"
    _ = path.write_text(
        f"gateway:\n"
        f"  certificate_file: {certificate_file}\n"
        f"  host: localhost\n"
        f"  port: 12195\n"
        f"  connect_timeout: 5\n"
        f"  grace_period: 0.5\n"
    )
    return path


@pytest.fixture
def batch_path(tmp_path: Path) -> Path:
    path = tmp_path / "batch.yaml"
    _ = path.write_text(
        f"- tokens: ['{make_token(1)}', '{make_token(2)}']\n"
        f"  data: {{aps: {{alert: hello}}}}\n"
        f"- tokens: ['{make_token(3)}']\n"
        f"  data: {{aps: {{badge: 1}}}}\n"
    )
    return path


@pytest.fixture
def mock_logging() -> Generator[MagicMock, None, None]:
    with patch("pushgate.__main__.configure_logging") as mock:
        yield mock


@pytest.fixture
def mock_provider(gateway: ScriptedGateway) -> Generator[MagicMock, None, None]:
    with patch("pushgate.__main__.TLSConnectionProvider", return_value=gateway) as mock:
        yield mock


def _exit_code(argv: list[str]) -> int | str | None:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


@pytest.mark.unit
class TestParseArguments:
    def test_defaults(self) -> None:
        args = parse_arguments(["--batch", "batch.yaml"])

        assert args.config == Path("config/pushgate.yaml")
        assert args.batch == Path("batch.yaml")
        assert args.sandbox is False
        assert args.log_level is None
        assert args.no_syslog is False

    def test_short_options(self) -> None:
        args = parse_arguments(["-c", "other.yaml", "-b", "batch.json", "--sandbox", "--log-level", "DEBUG"])

        assert args.config == Path("other.yaml")
        assert args.batch == Path("batch.json")
        assert args.sandbox is True
        assert args.log_level == "DEBUG"

    def test_batch_is_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _ = parse_arguments([])

        assert exc_info.value.code == 2

    def test_rejects_unknown_log_level(self) -> None:
        with pytest.raises(SystemExit):
            _ = parse_arguments(["--batch", "b.yaml", "--log-level", "CHATTY"])


@pytest.mark.unit
class TestFormatReport:
    def test_pushed_and_unpushed(self) -> None:
        pushed = Notification(tokens=[make_token(1), make_token(2)], data={})
        pushed.results = DeliveryResults((StatusCode.NO_ERROR, StatusCode.INVALID_TOKEN))
        unpushed = Notification(tokens=[make_token(3)], data={})

        assert format_report([pushed, unpushed]) == [
            "#0 tokens=2 success=1 failed=1 [NO_ERROR, INVALID_TOKEN]",
            "#1 tokens=1 not pushed",
        ]


@pytest.mark.unit
@pytest.mark.usefixtures("mock_logging")
class TestMain:
    def test_all_accepted(
        self,
        config_path: Path,
        batch_path: Path,
        gateway: ScriptedGateway,
        mock_provider: MagicMock,
        certificate: str,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = _exit_code(["--config", str(config_path), "--batch", str(batch_path)])

        assert code == EXIT_SUCCESS
        assert capsys.readouterr().out.splitlines() == [
            "#0 tokens=2 success=2 failed=0 [NO_ERROR, NO_ERROR]",
            "#1 tokens=1 success=1 failed=0 [NO_ERROR]",
        ]
        mock_provider.assert_called_once_with(host="localhost", port=12195, connect_timeout=5.0, passphrase=None)
        assert gateway.open_calls == [(certificate, False)]
        assert len(gateway.written) == 3

    def test_rejected_token_exits_with_delivery_failure(
        self,
        config_path: Path,
        batch_path: Path,
        gateway: ScriptedGateway,
        capsys: pytest.CaptureFixture[str],
        mock_provider: MagicMock,
    ) -> None:
        gateway.readiness = [False, True]
        gateway.responses = [error_response(StatusCode.INVALID_TOKEN, 1)]

        code = _exit_code(["--config", str(config_path), "--batch", str(batch_path)])

        assert code == EXIT_DELIVERY_FAILED
        assert capsys.readouterr().out.splitlines() == [
            "#0 tokens=2 success=1 failed=1 [NO_ERROR, INVALID_TOKEN]",
            "#1 tokens=1 success=1 failed=0 [NO_ERROR]",
        ]
        assert gateway.opens == 2

    def test_grace_period_from_config(
        self, config_path: Path, batch_path: Path, gateway: ScriptedGateway, mock_provider: MagicMock
    ) -> None:
        _ = _exit_code(["--config", str(config_path), "--batch", str(batch_path)])

        assert gateway.poll_timeouts == [0.0, 0.0, 0.5]

    def test_sandbox_flag(
        self, config_path: Path, batch_path: Path, gateway: ScriptedGateway, mock_provider: MagicMock
    ) -> None:
        _ = _exit_code(["--config", str(config_path), "--batch", str(batch_path), "--sandbox"])

        assert gateway.open_calls[0][1] is True

    def test_logging_overrides(
        self,
        config_path: Path,
        batch_path: Path,
        mock_logging: MagicMock,
        mock_provider: MagicMock,
    ) -> None:
        _ = _exit_code(
            ["--config", str(config_path), "--batch", str(batch_path), "--log-level", "DEBUG", "--no-syslog"]
        )

        mock_logging.assert_called_once_with(log_level="DEBUG", enable_syslog=False, enable_console=True)

    def test_missing_config(
        self, tmp_path: Path, batch_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = _exit_code(["--config", str(tmp_path / "missing.yaml"), "--batch", str(batch_path)])

        assert code == EXIT_CONFIG_ERROR
        assert "Configuration error" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "entry",
        [
            "- tokens: ['xyz']\n  data: {}\n",
            "- tokens: ['ab cd']\n  data: {}\n",
            "- tokens: ['']\n  data: {}\n",
            f"- tokens: ['{make_token(1)}']\n  data: {{}}\n  expiry: 4294967296\n",
        ],
    )
    def test_invalid_batch(
        self,
        config_path: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
        mock_provider: MagicMock,
        entry: str,
    ) -> None:
        batch = tmp_path / "bad.yaml"
        _ = batch.write_text(entry)

        code = _exit_code(["--config", str(config_path), "--batch", str(batch)])

        assert code == EXIT_CONFIG_ERROR
        assert "Notification #0 is invalid" in capsys.readouterr().err
        mock_provider.assert_not_called()

    def test_unreachable_gateway(
        self,
        config_path: Path,
        batch_path: Path,
        gateway: ScriptedGateway,
        capsys: pytest.CaptureFixture[str],
        mock_provider: MagicMock,
    ) -> None:
        gateway.open_faults = 100

        code = _exit_code(["--config", str(config_path), "--batch", str(batch_path)])

        assert code == EXIT_DELIVERY_FAILED
        assert capsys.readouterr().out.splitlines() == [
            "#0 tokens=2 success=0 failed=2 [UNKNOWN, UNKNOWN]",
            "#1 tokens=1 success=0 failed=1 [UNKNOWN]",
        ]
