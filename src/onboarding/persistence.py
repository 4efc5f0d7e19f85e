"""
Onboarding Persistence.

Durable storage for the in-progress WizardState so onboarding survives
reloads and restarts. Onboarding can span days (the analyst may need to get a
SEBI certificate scanned), so every wizard mutation writes through here.

Contract (all stores):
- save() overwrites the whole record; a partial write never lands.
- load() returns None when nothing is stored OR the record does not parse.
- clear() is idempotent.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from .state import ONBOARDING_STORAGE_KEY, WizardState, utc_now_iso

if TYPE_CHECKING:
    from supabase import Client

    from marketplace.config import Settings

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "onboarding_sessions"


class PersistenceError(Exception):
    """Raised when a store cannot write or erase the record."""


def _decode(raw: str | dict | None, user_id: str) -> WizardState | None:
    """Decode a stored record; corrupt data is logged and treated as absent."""
    if raw is None:
        return None
    try:
        if isinstance(raw, dict):
            return WizardState.from_dict(raw)
        return WizardState.from_json(raw)
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        logger.warning(f"Discarding unreadable onboarding state for {user_id}: {e}")
        return None


class StateStore(ABC):
    """Per-user key-value slot holding one WizardState."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    @property
    def key(self) -> str:
        return f"{ONBOARDING_STORAGE_KEY}:{self.user_id}"

    @abstractmethod
    def save(self, state: WizardState) -> None:
        ...

    @abstractmethod
    def load(self) -> WizardState | None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class MemoryStateStore(StateStore):
    """
    Process-local store.

    Keeps the serialized JSON (not the object) so load() goes through the
    same codec as the durable stores.
    """

    def __init__(self, user_id: str = "local", slots: dict[str, str] | None = None):
        super().__init__(user_id)
        self.slots = slots if slots is not None else {}

    def save(self, state: WizardState) -> None:
        self.slots[self.key] = state.to_json()

    def load(self) -> WizardState | None:
        return _decode(self.slots.get(self.key), self.user_id)

    def clear(self) -> None:
        self.slots.pop(self.key, None)


class FileStateStore(StateStore):
    """JSON file per user, replaced atomically on every save."""

    def __init__(self, directory: Path | str, user_id: str = "local"):
        super().__init__(user_id)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        safe_user = "".join(c if c.isalnum() or c in "-_" else "_" for c in self.user_id)
        return self.directory / f"{ONBOARDING_STORAGE_KEY}_{safe_user}.json"

    def save(self, state: WizardState) -> None:
        payload = state.to_json()
        tmp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise PersistenceError(f"Failed to save onboarding state: {e}") from e

    def load(self) -> WizardState | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Discarding unreadable onboarding state for {self.user_id}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Failed to read onboarding state for {self.user_id}: {e}")
            return None
        return _decode(raw, self.user_id)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to clear onboarding state: {e}") from e


class SupabaseStateStore(StateStore):
    """Row per user in the onboarding_sessions table (state stored as JSONB)."""

    def __init__(self, client: "Client", user_id: str):
        super().__init__(user_id)
        self.client = client

    def save(self, state: WizardState) -> None:
        try:
            self.client.table(SESSIONS_TABLE).upsert({
                "user_id": self.user_id,
                "state": state.to_dict(),
                "current_step": int(state.current_step),
                "updated_at": utc_now_iso(),
            }).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to save onboarding session: {e}") from e

    def load(self) -> WizardState | None:
        try:
            result = (
                self.client.table(SESSIONS_TABLE)
                .select("state")
                .eq("user_id", self.user_id)
                .execute()
            )
        except Exception as e:
            logger.warning(f"Failed to load onboarding session: {e}")
            return None

        if not result.data:
            return None
        return _decode(result.data[0].get("state"), self.user_id)

    def clear(self) -> None:
        try:
            self.client.table(SESSIONS_TABLE).delete().eq("user_id", self.user_id).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to clear onboarding session: {e}") from e


def create_state_store(user_id: str, settings: "Settings") -> StateStore:
    """Build the configured store backend for a user."""
    if settings.onboarding_store == "supabase":
        from marketplace.db.client import get_service_client
        return SupabaseStateStore(get_service_client(), user_id)
    if settings.onboarding_store == "memory":
        return MemoryStateStore(user_id, slots=_shared_memory_slots)
    return FileStateStore(settings.onboarding_state_dir, user_id)


# Backing dict for the "memory" backend, shared across requests in one process
_shared_memory_slots: dict[str, str] = {}
