"""Tests for the image-source cascade and per-destination resolution tasks."""

import asyncio

import httpx
import pytest

from vistamatch.models import DestinationRecord, ImageResolution, Language
from vistamatch.services.image_resolver import (
    ImageResolutionManager,
    ImageResolver,
    build_fallback_image_url,
)

COMMONS_HOST = "commons.wikimedia.org"
EN_WIKI_HOST = "en.wikipedia.org"
ZH_WIKI_HOST = "zh.wikipedia.org"

NO_RESULTS = {"batchcomplete": ""}
MISSING_PAGE = {"query": {"pages": {"-1": {"title": "Nowhere", "missing": ""}}}}


def commons_hit(url: str) -> dict:
    return {"query": {"pages": {"101": {"imageinfo": [{"url": url}]}}}}


def page_image(url: str) -> dict:
    return {"query": {"pages": {"202": {"original": {"source": url, "width": 800}}}}}


def make_destination(**overrides) -> DestinationRecord:
    values = dict(
        id="dest-1-0",
        name="Lake Moraine",
        english_name="Moraine Lake",
        location="Canada",
        reason="r",
        route="r",
        season="s",
        tips="t",
        itinerary="i",
        image_keyword="turquoise glacier lake",
    )
    values.update(overrides)
    return DestinationRecord(**values)


class FakeImageApis:
    """Routes requests by host and records them in order."""

    def __init__(self, responses: dict):
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get(request.url.host, NO_RESULTS)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


def make_resolver(apis) -> ImageResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(apis))
    return ImageResolver(client=client)


class TestBuildFallbackImageUrl:
    """Tests for the generated-image fallback URL."""

    def test_encodes_keyword_and_location(self):
        """Test that keyword and location are URL-encoded into the prompt."""
        url = build_fallback_image_url("turquoise lake", "Banff, Canada")
        assert url == (
            "https://image.pollinations.ai/prompt/scenery%20photograph%20of%20"
            "turquoise%20lake%20in%20Banff%2C%20Canada"
            "?width=800&height=600&nologo=true&model=flux"
        )

    def test_deterministic(self):
        """Test that the same inputs always give the same URL."""
        assert build_fallback_image_url("a", "b") == build_fallback_image_url("a", "b")


class TestImageResolver:
    """Tests for the ordered image cascade."""

    @pytest.mark.asyncio
    async def test_commons_hit_short_circuits(self):
        """Test that a Commons result stops the cascade."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/commons.jpg")})
        async with make_resolver(apis) as resolver:
            result = await resolver.resolve(make_destination(), Language.CHINESE)
        await resolver.client.aclose()

        assert result.url == "https://img/commons.jpg"
        assert result.source == "commons"
        assert result.is_resolved
        assert apis.hosts == [COMMONS_HOST]

    @pytest.mark.asyncio
    async def test_commons_query(self):
        """Test that Commons is searched for '<english name> landscape' in the file namespace."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/commons.jpg")})
        resolver = make_resolver(apis)
        await resolver.resolve(make_destination())
        await resolver.client.aclose()

        params = apis.requests[0].url.params
        assert params["gsrsearch"] == "Moraine Lake landscape"
        assert params["gsrnamespace"] == "6"
        assert params["gsrlimit"] == "1"
        assert params["iiprop"] == "url"

    @pytest.mark.asyncio
    async def test_english_wikipedia_second(self):
        """Test that the English page image is tried after Commons."""
        apis = FakeImageApis({EN_WIKI_HOST: page_image("https://img/en.jpg")})
        resolver = make_resolver(apis)
        result = await resolver.resolve(make_destination())
        await resolver.client.aclose()

        assert result.url == "https://img/en.jpg"
        assert result.source == "wikipedia:en"
        assert apis.hosts == [COMMONS_HOST, EN_WIKI_HOST]
        assert apis.requests[1].url.params["titles"] == "Moraine Lake"

    @pytest.mark.asyncio
    async def test_local_wikipedia_third(self):
        """Test that the local-language page is tried with the local name."""
        apis = FakeImageApis(
            {
                EN_WIKI_HOST: MISSING_PAGE,
                ZH_WIKI_HOST: page_image("https://img/zh.jpg"),
            }
        )
        resolver = make_resolver(apis)
        destination = make_destination(name="梦莲湖")
        result = await resolver.resolve(destination, Language.CHINESE)
        await resolver.client.aclose()

        assert result.url == "https://img/zh.jpg"
        assert apis.hosts == [COMMONS_HOST, EN_WIKI_HOST, ZH_WIKI_HOST]
        assert apis.requests[2].url.params["titles"] == "梦莲湖"

    @pytest.mark.asyncio
    async def test_local_wikipedia_skipped_when_same_term(self):
        """Test that no duplicate lookup is made when the local name equals the English one."""
        apis = FakeImageApis({})
        resolver = make_resolver(apis)
        destination = make_destination(name="Moraine Lake")
        result = await resolver.resolve(destination, Language.CHINESE)
        await resolver.client.aclose()

        assert apis.hosts == [COMMONS_HOST, EN_WIKI_HOST]
        assert result.source == "generated"

    @pytest.mark.asyncio
    async def test_local_wikipedia_skipped_for_english(self):
        """Test that the English locale never reaches the third source."""
        apis = FakeImageApis({})
        resolver = make_resolver(apis)
        await resolver.resolve(make_destination(), Language.ENGLISH)
        await resolver.client.aclose()

        assert apis.hosts == [COMMONS_HOST, EN_WIKI_HOST]

    @pytest.mark.asyncio
    async def test_all_absent_uses_fallback(self):
        """Test that empty answers from every source end in the generated image."""
        apis = FakeImageApis({EN_WIKI_HOST: MISSING_PAGE, ZH_WIKI_HOST: MISSING_PAGE})
        resolver = make_resolver(apis)
        destination = make_destination()
        result = await resolver.resolve(destination, Language.CHINESE)
        await resolver.client.aclose()

        assert result.url == build_fallback_image_url("turquoise glacier lake", "Canada")
        assert result.source == "generated"
        assert len(apis.requests) == 3

    @pytest.mark.asyncio
    async def test_source_errors_are_absorbed(self):
        """Test that HTTP errors and malformed bodies just advance the cascade."""
        apis = FakeImageApis(
            {
                COMMONS_HOST: httpx.Response(500),
                EN_WIKI_HOST: httpx.Response(200, text="not json"),
                ZH_WIKI_HOST: {"query": {"pages": {"1": {"original": {}}}}},
            }
        )
        resolver = make_resolver(apis)
        result = await resolver.resolve(make_destination(), Language.CHINESE)
        await resolver.client.aclose()

        assert result.source == "generated"
        assert len(apis.requests) == 3

    @pytest.mark.asyncio
    async def test_transport_error_is_absorbed(self):
        """Test that connection failures do not escape."""

        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        resolver = make_resolver(handler)
        result = await resolver.resolve(make_destination())
        await resolver.client.aclose()

        assert result.source == "generated"


class TestImageResolutionManager:
    """Tests for per-destination resolution tasks."""

    @pytest.mark.asyncio
    async def test_resolve_all(self):
        """Test that every destination gets its own resolved state."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)
        destinations = [make_destination(id="a"), make_destination(id="b")]

        states = await manager.resolve_all(destinations)
        await resolver.client.aclose()

        assert set(states) == {"a", "b"}
        assert all(s.url == "https://img/a.jpg" for s in states.values())

    @pytest.mark.asyncio
    async def test_unknown_destination_is_pending(self):
        """Test that an untracked destination reports pending."""
        manager = ImageResolutionManager(None)
        assert manager.state("nope").status == "pending"

    @pytest.mark.asyncio
    async def test_same_key_not_resolved_twice(self):
        """Test that repeated renders do not trigger new lookups."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)
        destination = make_destination()

        await manager.resolve_all([destination])
        await manager.resolve_all([destination])
        await manager.resolve_all([destination.model_copy(update={"is_favorite": True})])
        await resolver.client.aclose()

        assert len(apis.requests) == 1

    @pytest.mark.asyncio
    async def test_locale_change_resolves_again(self):
        """Test that switching locale starts a new resolution."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)
        destination = make_destination()

        await manager.resolve_all([destination], Language.ENGLISH)
        await manager.resolve_all([destination], Language.CHINESE)
        await resolver.client.aclose()

        assert len(apis.requests) == 2

    @pytest.mark.asyncio
    async def test_name_change_resolves_again(self):
        """Test that changing an identity field starts a new resolution."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)

        await manager.resolve_all([make_destination()])
        await manager.resolve_all([make_destination(english_name="Lake Louise")])
        await resolver.client.aclose()

        assert len(apis.requests) == 2
        assert apis.requests[1].url.params["gsrsearch"] == "Lake Louise landscape"

    @pytest.mark.asyncio
    async def test_cancel_discards_late_result(self):
        """Test that a cancelled resolution never writes its result."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_handler(request):
            started.set()
            await release.wait()
            return httpx.Response(200, json=commons_hit("https://img/late.jpg"))

        resolved = []
        resolver = make_resolver(slow_handler)
        manager = ImageResolutionManager(resolver, on_resolved=lambda i, s: resolved.append(i))
        destination = make_destination()

        task = manager.ensure(destination)
        await started.wait()
        manager.cancel(destination.id)
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task
        await resolver.client.aclose()

        assert manager.state(destination.id).status == "pending"
        assert not manager.is_tracking(destination.id)
        assert resolved == []

    @pytest.mark.asyncio
    async def test_superseded_result_is_discarded(self):
        """Test that an older resolution cannot overwrite a newer one."""
        release = asyncio.Event()

        async def handler(request):
            if request.url.params.get("gsrsearch") == "Old Name landscape":
                await release.wait()
                return httpx.Response(200, json=commons_hit("https://img/old.jpg"))
            return httpx.Response(200, json=commons_hit("https://img/new.jpg"))

        resolver = make_resolver(handler)
        manager = ImageResolutionManager(resolver)

        old_task = manager.ensure(make_destination(english_name="Old Name"))
        await asyncio.sleep(0)
        new_task = manager.ensure(make_destination(english_name="New Name"))
        await new_task
        release.set()
        await asyncio.gather(old_task, return_exceptions=True)
        await resolver.client.aclose()

        assert manager.state("dest-1-0").url == "https://img/new.jpg"

    @pytest.mark.asyncio
    async def test_retain_cancels_others(self):
        """Test that destinations dropped from view are cancelled."""
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return httpx.Response(200, json=NO_RESULTS)

        resolver = make_resolver(handler)
        manager = ImageResolutionManager(resolver)
        keep = make_destination(id="keep")
        drop = make_destination(id="drop")

        manager.ensure(keep)
        drop_task = manager.ensure(drop)
        await asyncio.sleep(0)
        manager.retain(["keep"])
        release.set()
        await asyncio.gather(drop_task, return_exceptions=True)
        await manager.resolve_all([keep])
        await resolver.client.aclose()

        assert drop_task.cancelled()
        assert not manager.is_tracking("drop")
        assert manager.state("keep").source == "generated"

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self):
        """Test that close() cancels in-flight resolutions."""
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return httpx.Response(200, json=NO_RESULTS)

        resolver = make_resolver(handler)
        manager = ImageResolutionManager(resolver)
        task = manager.ensure(make_destination())
        await asyncio.sleep(0)

        await manager.close()
        await resolver.client.aclose()

        assert task.cancelled()
        assert manager.state("dest-1-0").status == "pending"

    @pytest.mark.asyncio
    async def test_failed_resolution_is_retried(self):
        """Test that a resolution that raised is started again for the same key."""

        class FlakyResolver:
            def __init__(self):
                self.calls = 0

            async def resolve(self, destination, language):
                self.calls += 1
                if self.calls == 1:
                    raise RuntimeError("resolver crashed")
                return ImageResolution(status="resolved", url="https://img/b.jpg", source="commons")

        resolver = FlakyResolver()
        manager = ImageResolutionManager(resolver)
        destination = make_destination()

        await manager.resolve_all([destination])
        assert manager.state(destination.id).status == "pending"

        await manager.resolve_all([destination])

        assert resolver.calls == 2
        assert manager.state(destination.id).url == "https://img/b.jpg"

    @pytest.mark.asyncio
    async def test_externally_cancelled_resolution_is_restarted(self):
        """Test that a task cancelled behind the manager's back is replaced."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)
        destination = make_destination()

        first = manager.ensure(destination)
        first.cancel()
        await asyncio.gather(first, return_exceptions=True)

        second = manager.ensure(destination)
        await second
        await resolver.client.aclose()

        assert second is not first
        assert manager.state(destination.id).url == "https://img/a.jpg"

    @pytest.mark.asyncio
    async def test_resolved_task_is_reused(self):
        """Test that a finished, resolved task is returned as-is."""
        apis = FakeImageApis({COMMONS_HOST: commons_hit("https://img/a.jpg")})
        resolver = make_resolver(apis)
        manager = ImageResolutionManager(resolver)
        destination = make_destination()

        first = manager.ensure(destination)
        await first
        second = manager.ensure(destination)
        await resolver.client.aclose()

        assert second is first
