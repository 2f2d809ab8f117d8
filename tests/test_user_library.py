import pytest

from movieflix.core.constants import SEARCH_HISTORY_LIMIT, WATCH_HISTORY_LIMIT
from movieflix.services.user_library import UserLibrary


@pytest.fixture
def library(store) -> UserLibrary:
    return UserLibrary(store)


class TestCollections:
    @pytest.mark.asyncio
    async def test_favorites_are_unique(self, library):
        assert await library.add_to_favorites({"id": 1, "title": "Dune"}) is True
        assert await library.add_to_favorites({"id": 1, "title": "Dune"}) is False

        assert await library.is_favorite(1) is True
        assert await library.get_favorites() == [{"id": 1, "title": "Dune"}]

    @pytest.mark.asyncio
    async def test_remove_from_watchlist(self, library):
        await library.add_to_watchlist({"id": 1})
        await library.add_to_watchlist({"id": 2})

        assert await library.remove_from_watchlist(1) is True
        assert await library.remove_from_watchlist(1) is False
        assert await library.get_watchlist() == [{"id": 2}]
        assert await library.is_in_watchlist(1) is False


class TestHistories:
    @pytest.mark.asyncio
    async def test_search_history_is_recent_first_and_deduplicated(self, library):
        for query in ("dune", "alien", "dune"):
            await library.add_to_search_history(query)
        assert await library.get_search_history() == ["dune", "alien"]

    @pytest.mark.asyncio
    async def test_search_history_is_capped(self, library):
        for i in range(SEARCH_HISTORY_LIMIT + 5):
            await library.add_to_search_history(f"q{i}")

        history = await library.get_search_history()
        assert len(history) == SEARCH_HISTORY_LIMIT
        assert history[0] == f"q{SEARCH_HISTORY_LIMIT + 4}"

    @pytest.mark.asyncio
    async def test_blank_query_is_ignored(self, library):
        assert await library.add_to_search_history("   ") is False
        assert await library.get_search_history() == []

    @pytest.mark.asyncio
    async def test_watch_history(self, library):
        for i in range(WATCH_HISTORY_LIMIT + 1):
            await library.add_to_watch_history({"id": i})
        await library.add_to_watch_history({"id": 10})

        history = await library.get_watch_history()
        assert len(history) == WATCH_HISTORY_LIMIT
        assert history[0]["id"] == 10
        assert [h["id"] for h in history].count(10) == 1
        assert "watched_at" in history[0]

    @pytest.mark.asyncio
    async def test_clear_history(self, library):
        await library.add_to_search_history("dune")
        await library.add_to_watch_history({"id": 1})

        assert await library.clear_history() is True
        assert await library.get_search_history() == []
        assert await library.get_watch_history() == []
