import io

import httpx
import pytest
from PIL import Image

from nakama.preview import BackoffError, Fetcher, Monitored, PreviewError, canonical_url

PAGE = '<html><head><meta property="og:title" content="Hello"></head></html>'


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class Server:
    """Records requests and answers from a table of path -> response."""

    def __init__(self, routes: dict[str, httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self.routes.get(request.url.path)
        if template is None:
            return httpx.Response(404, text="missing")
        # A response can only be streamed once; hand out a fresh copy.
        return httpx.Response(
            template.status_code, headers=template.headers, content=template.content
        )

    def hits(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)


def make_fetcher(server: Server, clock: FakeClock, **kwargs) -> Fetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return Fetcher(client, success_ttl=60, error_ttl=30, clock=clock, **kwargs)


def html(body: str, status: int = 200) -> httpx.Response:
    return httpx.Response(status, text=body, headers={"content-type": "text/html; charset=utf-8"})


def test_canonical_url() -> None:
    assert canonical_url("  example.com/a ") == "https://example.com/a"
    assert canonical_url("HTTP://example.com") == "HTTP://example.com"


@pytest.mark.asyncio
async def test_success_is_cached() -> None:
    server = Server({"/page": html(PAGE)})
    clock = FakeClock()
    fetcher = make_fetcher(server, clock)

    first = await fetcher.get("https://example.com/page")
    clock.now += 59
    second = await fetcher.get("example.com/page")

    assert first.title == second.title == "Hello"
    assert server.hits("/page") == 1
    assert server.requests[0].headers["user-agent"] == "Twitterbot/1.0"

    clock.now += 2
    await fetcher.get("https://example.com/page")
    assert server.hits("/page") == 2


@pytest.mark.asyncio
async def test_cached_preview_is_a_copy() -> None:
    server = Server({"/page": html(PAGE)})
    fetcher = make_fetcher(server, FakeClock())
    first = await fetcher.get("https://example.com/page")
    first.title = "changed"
    assert (await fetcher.get("https://example.com/page")).title == "Hello"


@pytest.mark.asyncio
async def test_failure_backs_off_until_error_ttl() -> None:
    server = Server({"/broken": html("oops", status=500)})
    clock = FakeClock()
    fetcher = make_fetcher(server, clock)

    with pytest.raises(PreviewError) as excinfo:
        await fetcher.get("https://example.com/broken")
    assert not isinstance(excinfo.value, BackoffError)
    assert "500" in str(excinfo.value)

    for _ in range(2):
        clock.now += 10
        with pytest.raises(BackoffError):
            await fetcher.get("https://example.com/broken")
    assert server.hits("/broken") == 1

    clock.now += 11
    with pytest.raises(PreviewError):
        await fetcher.get("https://example.com/broken")
    assert server.hits("/broken") == 2


@pytest.mark.asyncio
async def test_network_error_is_wrapped() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    fetcher = Fetcher(httpx.AsyncClient(transport=httpx.MockTransport(refuse)), clock=FakeClock())
    with pytest.raises(PreviewError) as excinfo:
        await fetcher.get("https://down.test")
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    with pytest.raises(BackoffError):
        await fetcher.get("https://down.test")


@pytest.mark.asyncio
async def test_image_url_preview() -> None:
    buf = io.BytesIO()
    Image.new("RGB", (64, 32), "red").save(buf, format="PNG")
    server = Server(
        {"/cat.png": httpx.Response(200, content=buf.getvalue(), headers={"content-type": "image/png"})}
    )
    og = await make_fetcher(server, FakeClock()).get("https://img.test/cat.png")

    assert og.type == "image"
    assert og.title == "cat.png"
    assert og.site_name == "img.test"
    [image] = og.images
    assert (image.url, image.width, image.height, image.type) == (
        "https://img.test/cat.png",
        64,
        32,
        "image/png",
    )


@pytest.mark.asyncio
async def test_body_is_truncated() -> None:
    body = PAGE + "<p>" + "x" * 10_000 + '</p><meta property="og:description" content="late">'
    server = Server({"/big": html(body)})
    og = await make_fetcher(server, FakeClock(), max_bytes=len(PAGE)).get("https://example.com/big")
    assert og.title == "Hello"
    assert og.description == ""


@pytest.mark.asyncio
async def test_monitored_keeps_order_and_reports_errors() -> None:
    server = Server({"/ok": html(PAGE), "/bad": html("no", status=502)})
    monitored = Monitored(make_fetcher(server, FakeClock()))

    results = await monitored.fetch(["https://a.test/ok", "https://a.test/bad"])

    assert [result.url for result in results] == ["https://a.test/ok", "https://a.test/bad"]
    assert results[0].error is None
    assert results[0].data.title == "Hello"
    assert isinstance(results[1].error, PreviewError)
    assert not results.is_empty()
    assert isinstance(monitored.errors.get_nowait(), PreviewError)


@pytest.mark.asyncio
async def test_monitored_with_no_urls() -> None:
    monitored = Monitored(make_fetcher(Server({}), FakeClock()))
    results = await monitored.fetch([])
    assert results == []
    assert results.is_empty()
