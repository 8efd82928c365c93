import asyncio

import httpx

from listing_ingest.auth import TokenManager

from conftest import TOKEN_URL


def make_manager(http_client, clock):
    return TokenManager(http_client, TOKEN_URL, "client-id", "client-secret", clock=clock)


def test_valid_token_is_reused(feed, http_client, clock):
    manager = make_manager(http_client, clock)

    async def run():
        first = await manager.ensure_valid_token()
        clock.advance(minutes=30)
        second = await manager.ensure_valid_token()
        return first, second

    assert asyncio.run(run()) == (True, True)
    assert feed.token_requests == 1
    assert manager.token == "tok-1"


def test_expiry_is_recorded_from_expires_in(feed, http_client, clock):
    manager = make_manager(http_client, clock)
    start = clock.now
    assert asyncio.run(manager.ensure_valid_token()) is True
    assert (manager.expires_at - start).total_seconds() == 3600


def test_concurrent_refresh_near_expiry_is_single_flight(feed, http_client, clock):
    manager = make_manager(http_client, clock)

    async def run():
        await manager.ensure_valid_token()
        clock.advance(minutes=56)
        return await asyncio.gather(manager.ensure_valid_token(), manager.ensure_valid_token())

    assert asyncio.run(run()) == [True, True]
    assert feed.token_requests == 2
    assert manager.token == "tok-2"


def test_concurrent_cold_callers_share_one_request(feed, http_client, clock):
    manager = make_manager(http_client, clock)

    async def run():
        return await asyncio.gather(*(manager.ensure_valid_token() for _ in range(5)))

    assert asyncio.run(run()) == [True] * 5
    assert feed.token_requests == 1


def test_failed_refresh_keeps_previous_token(feed, http_client, clock):
    manager = make_manager(http_client, clock)

    async def run():
        await manager.ensure_valid_token()
        expires_at = manager.expires_at
        clock.advance(minutes=57)
        feed.token_status = 500
        ok = await manager.ensure_valid_token()
        return ok, expires_at

    ok, expires_at = asyncio.run(run())
    assert ok is False
    assert manager.token == "tok-1"
    assert manager.expires_at == expires_at


def test_response_missing_fields_is_a_failure(feed, http_client, clock):
    feed.token_body = {"access_token": "only-token"}
    manager = make_manager(http_client, clock)
    assert asyncio.run(manager.ensure_valid_token()) is False
    assert manager.token is None


def test_network_error_is_a_failure(clock):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    manager = make_manager(client, clock)
    assert asyncio.run(manager.ensure_valid_token()) is False
    assert manager.needs_refresh()
