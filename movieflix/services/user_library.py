from datetime import datetime, timezone
from typing import Any

from loguru import logger

from movieflix.core.constants import (
    FAVORITES_KEY,
    SEARCH_HISTORY_KEY,
    SEARCH_HISTORY_LIMIT,
    WATCH_HISTORY_KEY,
    WATCH_HISTORY_LIMIT,
    WATCHLIST_KEY,
)
from movieflix.services.storage.store import CacheStore


def _item_id(item: Any) -> Any:
    return item.get("id") if isinstance(item, dict) else item


class UserLibrary:
    """Locally kept favorites, watchlist and histories.

    Every list is stored as one value, so updates are read-modify-write and
    the last writer wins.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    async def _get_list(self, key: str) -> list:
        items = await self.store.get(key)
        return items if isinstance(items, list) else []

    async def _contains(self, key: str, item_id: Any) -> bool:
        return any(_item_id(item) == item_id for item in await self._get_list(key))

    async def _add(self, key: str, item: dict[str, Any]) -> bool:
        items = await self._get_list(key)
        if any(_item_id(existing) == _item_id(item) for existing in items):
            return False
        items.append(item)
        return await self.store.set(key, items)

    async def _remove(self, key: str, item_id: Any) -> bool:
        items = await self._get_list(key)
        remaining = [item for item in items if _item_id(item) != item_id]
        if len(remaining) == len(items):
            return False
        return await self.store.set(key, remaining)

    # Favorites

    async def get_favorites(self) -> list[dict[str, Any]]:
        return await self._get_list(FAVORITES_KEY)

    async def add_to_favorites(self, item: dict[str, Any]) -> bool:
        return await self._add(FAVORITES_KEY, item)

    async def remove_from_favorites(self, item_id: Any) -> bool:
        return await self._remove(FAVORITES_KEY, item_id)

    async def is_favorite(self, item_id: Any) -> bool:
        return await self._contains(FAVORITES_KEY, item_id)

    # Watchlist

    async def get_watchlist(self) -> list[dict[str, Any]]:
        return await self._get_list(WATCHLIST_KEY)

    async def add_to_watchlist(self, item: dict[str, Any]) -> bool:
        return await self._add(WATCHLIST_KEY, item)

    async def remove_from_watchlist(self, item_id: Any) -> bool:
        return await self._remove(WATCHLIST_KEY, item_id)

    async def is_in_watchlist(self, item_id: Any) -> bool:
        return await self._contains(WATCHLIST_KEY, item_id)

    # Histories (most recent first)

    async def get_watch_history(self) -> list[dict[str, Any]]:
        return await self._get_list(WATCH_HISTORY_KEY)

    async def add_to_watch_history(self, item: dict[str, Any]) -> bool:
        history = [entry for entry in await self._get_list(WATCH_HISTORY_KEY) if _item_id(entry) != _item_id(item)]
        history.insert(0, {**item, "watched_at": datetime.now(timezone.utc).isoformat()})
        return await self.store.set(WATCH_HISTORY_KEY, history[:WATCH_HISTORY_LIMIT])

    async def get_search_history(self) -> list[str]:
        return await self._get_list(SEARCH_HISTORY_KEY)

    async def add_to_search_history(self, query: str) -> bool:
        query = query.strip()
        if not query:
            return False
        history = [entry for entry in await self._get_list(SEARCH_HISTORY_KEY) if entry != query]
        history.insert(0, query)
        return await self.store.set(SEARCH_HISTORY_KEY, history[:SEARCH_HISTORY_LIMIT])

    async def clear_history(self) -> bool:
        watch = await self.store.remove(WATCH_HISTORY_KEY)
        search = await self.store.remove(SEARCH_HISTORY_KEY)
        logger.info("Cleared watch and search history")
        return watch and search
