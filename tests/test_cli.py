try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json
from pathlib import Path

import pytest

from ring_exporter.cli import EXIT_FAILURE, EXIT_OK, handle_init, main
from ring_exporter.core.config import AppSettings
from ring_exporter.models import Credential
from ring_exporter.services import CliAuthenticator, RingLedger


class NoPromptAuthenticator:
    def prompt_credentials(self) -> tuple[str, str]:  # pragma: no cover
        raise AssertionError("should not prompt")

    def prompt_2fa_code(self) -> str:  # pragma: no cover
        raise AssertionError("should not prompt")


def test_cli_authenticator_strips_input() -> None:
    answers = iter(["  user@example.com \n", " 123456 "])
    authenticator = CliAuthenticator(
        read_line=lambda prompt: next(answers),
        read_secret=lambda prompt: " pw ",
    )
    assert authenticator.prompt_credentials() == ("user@example.com", "pw")
    assert authenticator.prompt_2fa_code() == "123456"


def test_monitor_command_delegates_to_server(tmp_path: Path) -> None:
    served: list[Path] = []
    config_file = tmp_path / "ring-config.json"

    assert main(["--config.file", str(config_file), "monitor"], serve=served.append) == EXIT_OK
    assert served == [config_file]


def test_test_command_without_token_fails(tmp_path: Path, capsys) -> None:
    config_file = tmp_path / "ring-config.json"
    config_file.write_text("{}")

    assert main(["--config.file", str(config_file), "test"]) == EXIT_FAILURE
    assert "No token found" in capsys.readouterr().err


def test_missing_config_fails(tmp_path: Path) -> None:
    assert main(["--config.file", str(tmp_path / "absent.json"), "test"]) == EXIT_FAILURE


def test_unknown_command_exits() -> None:
    with pytest.raises(SystemExit):
        main(["frobnicate"])


@pytest.mark.anyio
async def test_init_creates_config_and_reuses_stored_token(tmp_path: Path) -> None:
    config_file = tmp_path / "ring-config.json"
    RingLedger(tmp_path / "ring-state.json").store_credential(
        Credential(access_token="existing")
    )

    result = await handle_init(config_file, AppSettings(), NoPromptAuthenticator())

    assert result == EXIT_OK
    assert json.loads(config_file.read_text())["api_config"]["hardware_id"]
