import pytest

from movieflix.core.constants import AUTH_TOKEN_KEY
from movieflix.core.security import TokenCipher, redact_token
from movieflix.services.auth import AuthTokenStore


@pytest.fixture(scope="module")
def cipher() -> TokenCipher:
    return TokenCipher("test-secret")


class TestAuthTokenStore:
    @pytest.mark.asyncio
    async def test_plain_round_trip_and_clear(self, auth, store):
        assert await auth.get() is None
        assert await auth.set("tok-1") is True
        assert await store.get(AUTH_TOKEN_KEY) == "tok-1"
        assert await auth.get() == "tok-1"

        await auth.clear()
        assert await auth.get() is None

    @pytest.mark.asyncio
    async def test_encrypted_at_rest(self, store, cipher):
        auth = AuthTokenStore(store, cipher)
        await auth.set("tok-1")

        assert await store.get(AUTH_TOKEN_KEY) != "tok-1"
        assert await auth.get() == "tok-1"

    @pytest.mark.asyncio
    async def test_undecryptable_token_reads_as_none(self, store, cipher):
        await store.set(AUTH_TOKEN_KEY, "written-before-encryption")
        assert await AuthTokenStore(store, cipher).get() is None

    @pytest.mark.asyncio
    async def test_non_string_value_is_ignored(self, auth, store):
        await store.set(AUTH_TOKEN_KEY, {"token": "x"})
        assert await auth.get() is None


def test_cipher_requires_secret():
    with pytest.raises(ValueError):
        TokenCipher("")


def test_redact_token():
    assert redact_token(None) == "None"
    assert redact_token("abc") == "abc"
    assert redact_token("abcdefghij") == "abcdef***"


@pytest.mark.asyncio
async def test_salt_changes_the_derived_key(store):
    await AuthTokenStore(store, TokenCipher("test-secret", salt="salt-one")).set("tok-1")

    assert await AuthTokenStore(store, TokenCipher("test-secret", salt="salt-two")).get() is None
    assert await AuthTokenStore(store, TokenCipher("test-secret", salt="salt-one")).get() == "tok-1"


def test_cipher_requires_salt():
    with pytest.raises(ValueError):
        TokenCipher("test-secret", salt="")
