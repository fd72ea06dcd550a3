"""
Presentation preferences.

Language and theme are opaque strings owned by the presentation layer.
They live in the same store as everything else; nothing here validates them.
"""

from typing import Optional

from docuhub.services.storage.interface import KeyValueStore


class PreferenceStore:
    """Pass-through storage for the language and theme preferences."""

    def __init__(
        self,
        store: KeyValueStore,
        language_key: str = "language",
        theme_key: str = "theme",
        default_language: str = "English",
        default_theme: str = "light",
    ):
        self._store = store
        self._language_key = language_key
        self._theme_key = theme_key
        self._default_language = default_language
        self._default_theme = default_theme

    async def _get(self, key: str, default: str) -> str:
        value: Optional[str] = await self._store.get(key)
        return default if value is None else value

    async def get_language(self) -> str:
        return await self._get(self._language_key, self._default_language)

    async def set_language(self, language: str) -> None:
        await self._store.set(self._language_key, language)

    async def get_theme(self) -> str:
        return await self._get(self._theme_key, self._default_theme)

    async def set_theme(self, theme: str) -> None:
        await self._store.set(self._theme_key, theme)
