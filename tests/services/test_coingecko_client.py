import httpx
import pytest

from chainxchange.core.exceptions import EmptyResponseError, RateLimitedError, UpstreamError
from chainxchange.services.coingecko import CoinGeckoClient, is_empty_payload, parse_retry_after


def make_client(handler, **kwargs):
    return CoinGeckoClient(
        "https://api.coingecko.com/api/v3",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


def test_parse_retry_after():
    assert parse_retry_after("7", 10) == 7
    assert parse_retry_after("2.5", 10) == 2.5
    assert parse_retry_after(None, 10) == 10
    assert parse_retry_after("soon", 10) == 10
    assert parse_retry_after("-3", 10) == 0


def test_is_empty_payload():
    assert is_empty_payload(None)
    assert is_empty_payload("")
    assert is_empty_payload([])
    assert not is_empty_payload({})
    assert not is_empty_payload([{"id": "bitcoin"}])


def test_build_url_encodes_params():
    client = CoinGeckoClient("https://api.coingecko.com/api/v3/")
    url = client.build_url("/simple/price", {"ids": "bitcoin,ethereum", "vs_currencies": "usd"})
    assert url.startswith("https://api.coingecko.com/api/v3/simple/price?")
    assert "ids=bitcoin%2Cethereum" in url
    assert "vs_currencies=usd" in url


@pytest.mark.asyncio
async def test_get_returns_parsed_body_and_sends_json_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"bitcoin": {"usd": 65000}})

    client = make_client(handler, user_agent="test-agent")
    data = await client.get("https://api.coingecko.com/api/v3/simple/price?ids=bitcoin")

    assert data == {"bitcoin": {"usd": 65000}}
    assert len(seen) == 1
    assert seen[0].headers["Accept"] == "application/json"
    assert seen[0].headers["User-Agent"] == "test-agent"


@pytest.mark.asyncio
async def test_empty_object_is_valid_data():
    client = make_client(lambda request: httpx.Response(200, json={}))
    assert await client.get("https://api.coingecko.com/api/v3/simple/price") == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("headers, expected", [
    ({"retry-after": "7"}, 7),
    ({}, 10),
    ({"retry-after": "later"}, 10),
])
async def test_429_raises_rate_limited_with_retry_after(headers, expected):
    client = make_client(lambda request: httpx.Response(429, headers=headers), default_retry_after=10)

    with pytest.raises(RateLimitedError) as exc_info:
        await client.get("https://api.coingecko.com/api/v3/coins/markets")

    assert exc_info.value.retry_after == expected
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
async def test_http_error_raises_upstream_error_with_status():
    client = make_client(lambda request: httpx.Response(503, text="maintenance"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.get("https://api.coingecko.com/api/v3/coins/markets")

    assert exc_info.value.status_code == 503
    assert not isinstance(exc_info.value, RateLimitedError)


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200),
    httpx.Response(200, json=[]),
    httpx.Response(200, content=b"null"),
])
async def test_empty_responses_raise(response):
    client = make_client(lambda request: response)

    with pytest.raises(EmptyResponseError):
        await client.get("https://api.coingecko.com/api/v3/coins/markets")


@pytest.mark.asyncio
async def test_non_json_body_raises_upstream_error():
    client = make_client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(UpstreamError):
        await client.get("https://api.coingecko.com/api/v3/coins/markets")


@pytest.mark.asyncio
async def test_timeout_raises_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler)

    with pytest.raises(UpstreamError) as exc_info:
        await client.get("https://api.coingecko.com/api/v3/coins/markets")
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open():
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[1])))
    client = CoinGeckoClient(client=http_client)

    await client.close()

    assert not http_client.is_closed
    await http_client.aclose()
