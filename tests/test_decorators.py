"""Tests for the cached() decorator."""

import pytest

from cacher.decorators import _format_key, cached


class TestFormatKey:
    """Tests for key template formatting."""

    def test_positional_placeholder(self):
        assert _format_key("user:{0}:scores", (123,), {}) == "user:123:scores"

    def test_named_placeholder(self):
        key = _format_key("user:{user_id}:top:{limit}", (), {"user_id": 1, "limit": 10})

        assert key == "user:1:top:10"

    def test_unfilled_placeholder_appends_digest(self):
        key = _format_key("report:{name}", (1, 2), {})

        assert key.startswith("report:{name}:")
        assert len(key) == len("report:{name}:") + 8

    def test_digest_tracks_arguments(self):
        key = _format_key("report:{name}", (1, 2), {})

        assert key == _format_key("report:{name}", (1, 2), {})
        assert key != _format_key("report:{name}", (1, 3), {})

    def test_digest_ignores_keyword_order(self):
        first = _format_key("report:{name}", (), {"a": 1, "b": 2})
        second = _format_key("report:{name}", (), {"b": 2, "a": 1})

        assert first == second


class TestCached:
    """Tests for cached()."""

    @pytest.mark.asyncio
    async def test_result_cached(self, cacher):
        calls = []

        @cached(cacher, "user:{0}", ttl=60)
        async def load_user(user_id):
            calls.append(user_id)
            return {"id": user_id}

        first = await load_user(7)
        second = await load_user(7)

        assert first == second == {"id": 7}
        assert calls == [7]
        assert await cacher.get_data("user:7") == {"id": 7}

    @pytest.mark.asyncio
    async def test_callable_key(self, cacher, fake_redis):
        @cached(cacher, lambda owner, name: f"repo:{owner}/{name}")
        async def load_repo(owner, name):
            return {"full_name": f"{owner}/{name}"}

        await load_repo("octo", "cat")

        assert "cacher:repo:octo/cat" in fake_redis.data

    @pytest.mark.asyncio
    async def test_invalidate(self, cacher):
        calls = []

        @cached(cacher, "user:{0}")
        async def load_user(user_id):
            calls.append(user_id)
            return {"id": user_id}

        await load_user(1)
        await load_user.invalidate(1)
        await load_user(1)

        assert calls == [1, 1]

    def test_wrapper_metadata(self, cacher):
        @cached(cacher, "user:{0}", ttl=42)
        async def load_user(user_id):
            """Load a user."""
            return {"id": user_id}

        assert load_user.__name__ == "load_user"
        assert load_user.__doc__ == "Load a user."
        assert load_user.cache_ttl == 42
        assert load_user.cache_key_template == "user:{0}"
