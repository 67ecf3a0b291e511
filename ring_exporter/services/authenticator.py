"""Terminal prompts used by ``ring-exporter init`` to authorize a new token."""

from __future__ import annotations

import getpass
from typing import Callable, Tuple


class CliAuthenticator:
    """Prompt on the controlling terminal for Ring account details."""

    def __init__(
        self,
        *,
        read_line: Callable[[str], str] = input,
        read_secret: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self._read_line = read_line
        self._read_secret = read_secret

    def prompt_credentials(self) -> Tuple[str, str]:
        username = self._read_line("Enter Username: ")
        password = self._read_secret("Enter Password: ")
        return username.strip(), password.strip()

    def prompt_2fa_code(self) -> str:
        return self._read_line("Enter 2FA Code: ").strip()


__all__ = ["CliAuthenticator"]
