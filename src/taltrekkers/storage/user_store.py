"""Local user data persistence (single JSON blob + fcntl.flock + atomic write).

The whole ``AllUsersData`` map lives under one file keyed by lowercase user name.
There is no schema versioning or migration.
"""

import fcntl
import json
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import TypeAdapter

from ..models.profile import AllUsersData, UserProfile, normalize_user_name

logger = structlog.get_logger()

_adapter = TypeAdapter(AllUsersData)

Updater = Callable[[AllUsersData], AllUsersData]


def load_all(path: Path) -> AllUsersData:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        fcntl.flock(f, fcntl.LOCK_SH)
        data = json.load(f)
        fcntl.flock(f, fcntl.LOCK_UN)
    return _adapter.validate_python(data)


def save_all(path: Path, users: AllUsersData) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = _adapter.dump_python(users, mode="json", by_alias=True)
    with tempfile.NamedTemporaryFile(
        "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
    ) as tmp:
        json.dump(payload, tmp, ensure_ascii=False)
    os.replace(tmp.name, path)


class UserDataStore:
    """State container for ``AllUsersData``.

    All mutation goes through :meth:`update` with a pure ``(state) -> state`` function;
    the result is written to disk before it becomes visible to readers.

    Args:
        path: JSON file holding the serialized map.
    """

    def __init__(self, path: Path):
        self.path = path
        self._state: AllUsersData = load_all(path)
        logger.info("user_store_loaded", path=str(path), users=len(self._state))

    @property
    def state(self) -> AllUsersData:
        return self._state

    def get(self, user_name: str) -> UserProfile | None:
        return self._state.get(normalize_user_name(user_name))

    def update(self, updater: Updater) -> AllUsersData:
        """Apply ``updater`` to the current state and persist the result."""
        new_state = updater(self._state)
        if new_state is self._state:
            return self._state
        save_all(self.path, new_state)
        self._state = new_state
        return new_state
