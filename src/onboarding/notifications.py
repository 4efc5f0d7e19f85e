"""Transient user notices raised by the onboarding screens (toast equivalent)."""

import logging
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

NoticeLevel = Literal["success", "error", "warning", "info"]


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


class Notifier:
    """Collects notices for the presentation layer to drain."""

    def __init__(self):
        self.notices: list[Notice] = []

    def _push(self, level: NoticeLevel, message: str) -> None:
        self.notices.append(Notice(level, message))
        log = logger.warning if level in ("error", "warning") else logger.info
        log(f"[{level}] {message}")

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def warning(self, message: str) -> None:
        self._push("warning", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def drain(self) -> list[Notice]:
        """Return pending notices and forget them."""
        pending, self.notices = self.notices, []
        return pending

    @property
    def last(self) -> Notice | None:
        return self.notices[-1] if self.notices else None
