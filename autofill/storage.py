"""Credential retrieval.

The core never sees how a key is stored or encrypted; it only asks a
``StorageProvider`` for the current key.
"""

from typing import Protocol

from autofill.config import Settings, settings


class StorageProvider(Protocol):
    async def retrieve_api_key(self) -> str | None:
        ...


class SettingsStorageProvider:
    """Reads the key from application settings (``ANTHROPIC_API_KEY``)."""

    def __init__(self, app_settings: Settings | None = None) -> None:
        self.settings = app_settings or settings

    async def retrieve_api_key(self) -> str | None:
        return self.settings.anthropic_api_key or None


class StaticStorageProvider:
    """Serves a fixed key, e.g. one passed on the command line."""

    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key

    async def retrieve_api_key(self) -> str | None:
        return self._api_key or None
