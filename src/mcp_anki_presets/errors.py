"""Domain errors."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AnkiConnectError(RuntimeError):
    """Raised when AnkiConnect answers with an HTTP failure or a populated error field."""

    action: str
    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"AnkiConnect error for {self.action} (HTTP {self.status_code}): {self.message}"
        return f"AnkiConnect error for {self.action}: {self.message}"


class ConfigError(RuntimeError):
    """Raised at startup when the tool configuration is unusable."""
