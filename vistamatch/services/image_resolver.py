"""Resolve a photograph for each destination from free image sources.

Sources are tried strictly in order and the first concrete URL wins:

1. Wikimedia Commons file search for "<english name> landscape"
2. Page image of the English Wikipedia article for the English name
3. Page image of the local-language Wikipedia article for the local name,
   only when the locale is not English and the local name differs
4. A generated image URL built from the image keyword and location

Source failures never escape; they only move the cascade along.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable
from urllib.parse import quote

import httpx

from vistamatch.models import PRIMARY_LANGUAGE, ImageResolution, Language

if TYPE_CHECKING:
    from vistamatch.models import DestinationRecord

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "VistaMatch/0.1 (travel recommendations)"

FALLBACK_IMAGE_URL = (
    "https://image.pollinations.ai/prompt/"
    "scenery%20photograph%20of%20{keyword}%20in%20{location}"
    "?width=800&height=600&nologo=true&model=flux"
)


def build_fallback_image_url(image_keyword: str, location: str) -> str:
    """Build the generated-image URL used when every lookup comes back empty."""
    return FALLBACK_IMAGE_URL.format(
        keyword=quote(image_keyword, safe=""),
        location=quote(location, safe=""),
    )


def _first_page(data: dict) -> dict | None:
    """Return the first page of a MediaWiki query response, if any."""
    pages = data.get("query", {}).get("pages")
    if not pages:
        return None
    return next(iter(pages.values()))


class WikimediaCommonsSource:
    """Search Wikimedia Commons files and return the top hit's image URL."""

    name = "commons"
    API_URL = "https://commons.wikimedia.org/w/api.php"
    FILE_NAMESPACE = 6

    async def find_image(self, client: httpx.AsyncClient, term: str) -> str | None:
        """
        Search Commons for a single file matching the term.

        Args:
            client: Shared HTTP client
            term: Search text (e.g., "Moraine Lake landscape")

        Returns:
            Direct image URL, or None if nothing usable came back
        """
        try:
            response = await client.get(
                self.API_URL,
                params={
                    "action": "query",
                    "generator": "search",
                    "gsrsearch": term,
                    "gsrnamespace": self.FILE_NAMESPACE,
                    "gsrlimit": 1,
                    "prop": "imageinfo",
                    "iiprop": "url",
                    "format": "json",
                    "origin": "*",
                },
            )
            response.raise_for_status()
            page = _first_page(response.json())
            if not page:
                return None
            return page["imageinfo"][0]["url"] or None
        except Exception as e:
            logger.info("Commons lookup failed for %r: %s", term, e)
            return None


class WikipediaPageImageSource:
    """Look up the lead image of a Wikipedia article in one language."""

    API_URL = "https://{language}.wikipedia.org/w/api.php"

    def __init__(self, language: str):
        self.language = getattr(language, "value", language)

    @property
    def name(self) -> str:
        return f"wikipedia:{self.language}"

    async def find_image(self, client: httpx.AsyncClient, title: str) -> str | None:
        """
        Fetch the original page image for an article title.

        Args:
            client: Shared HTTP client
            title: Article title (e.g., "Moraine Lake")

        Returns:
            Direct image URL, or None if the article has no page image
        """
        try:
            response = await client.get(
                self.API_URL.format(language=self.language),
                params={
                    "action": "query",
                    "prop": "pageimages",
                    "piprop": "original",
                    "titles": title,
                    "format": "json",
                    "origin": "*",
                },
            )
            response.raise_for_status()
            page = _first_page(response.json())
            if not page or "original" not in page:
                return None
            return page["original"]["source"] or None
        except Exception as e:
            logger.info("%s lookup failed for %r: %s", self.name, title, e)
            return None


class ImageResolver:
    """Runs the image-source cascade for one destination at a time."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        primary_language: Language = PRIMARY_LANGUAGE,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self.primary_language = primary_language
        self.commons = WikimediaCommonsSource()

    async def __aenter__(self) -> "ImageResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _attempts(
        self, destination: "DestinationRecord", language: Language
    ) -> list[tuple[str, Callable[[], Awaitable[str | None]]]]:
        """Build the ordered lookups; each runs only when reached."""
        search_term = destination.english_name or destination.name
        local_term = destination.name

        primary = WikipediaPageImageSource(self.primary_language)
        attempts = [
            (
                self.commons.name,
                lambda: self.commons.find_image(self.client, f"{search_term} landscape"),
            ),
            (primary.name, lambda: primary.find_image(self.client, search_term)),
        ]

        if Language(language) != self.primary_language and local_term != search_term:
            local = WikipediaPageImageSource(language)
            attempts.append((local.name, lambda: local.find_image(self.client, local_term)))

        return attempts

    async def resolve(
        self, destination: "DestinationRecord", language: Language = PRIMARY_LANGUAGE
    ) -> ImageResolution:
        """
        Find the best available image for a destination.

        Args:
            destination: Destination to illustrate
            language: Active locale

        Returns:
            A resolved ImageResolution; this never fails
        """
        for source_name, lookup in self._attempts(destination, language):
            url = await lookup()
            if url:
                logger.debug("Image for %s from %s", destination.id, source_name)
                return ImageResolution(status="resolved", url=url, source=source_name)

        url = build_fallback_image_url(destination.image_keyword, destination.location)
        return ImageResolution(status="resolved", url=url, source="generated")


def resolution_key(destination: "DestinationRecord", language: Language) -> tuple:
    """Fields whose change requires resolving the image again."""
    return (
        destination.id,
        destination.name,
        destination.english_name,
        getattr(language, "value", language),
    )


class ImageResolutionManager:
    """
    Owns one cancellable resolution task per destination id.

    A result is only stored if its task is still the one registered for
    that destination, so late answers for cancelled or superseded
    resolutions are dropped.
    """

    def __init__(
        self,
        resolver: ImageResolver | None = None,
        on_resolved: Callable[[str, ImageResolution], None] | None = None,
    ):
        self.resolver = resolver
        self.on_resolved = on_resolved
        self._tasks: dict[str, asyncio.Task] = {}
        self._keys: dict[str, tuple] = {}
        self._states: dict[str, ImageResolution] = {}

    def state(self, destination_id: str) -> ImageResolution:
        """Current image state for a destination (pending if unknown)."""
        return self._states.get(destination_id, ImageResolution())

    def is_tracking(self, destination_id: str) -> bool:
        return destination_id in self._tasks

    def ensure(
        self, destination: "DestinationRecord", language: Language = PRIMARY_LANGUAGE
    ) -> asyncio.Task:
        """
        Start resolving a destination unless the same resolution already exists.

        A finished task that left the destination pending (it failed or was
        cancelled from outside) is replaced by a fresh one.

        Must be called from a running event loop.
        """
        key = resolution_key(destination, language)
        existing = self._tasks.get(destination.id)
        if (
            existing is not None
            and self._keys.get(destination.id) == key
            and (not existing.done() or self.state(destination.id).is_resolved)
        ):
            return existing

        self.cancel(destination.id)
        self._keys[destination.id] = key
        self._states[destination.id] = ImageResolution()
        task = asyncio.create_task(self._run(destination, language))
        self._tasks[destination.id] = task
        return task

    async def _run(
        self, destination: "DestinationRecord", language: Language
    ) -> ImageResolution:
        result = await self.resolver.resolve(destination, language)
        if self._tasks.get(destination.id) is not asyncio.current_task():
            logger.debug("Discarding stale image result for %s", destination.id)
            return result
        self._states[destination.id] = result
        if self.on_resolved:
            self.on_resolved(destination.id, result)
        return result

    def cancel(self, destination_id: str) -> None:
        """Stop tracking a destination and cancel its in-flight lookup."""
        task = self._tasks.pop(destination_id, None)
        self._keys.pop(destination_id, None)
        self._states.pop(destination_id, None)
        if task is not None and not task.done():
            task.cancel()

    def retain(self, destination_ids: Iterable[str]) -> None:
        """Cancel every resolution whose destination is no longer shown."""
        keep = set(destination_ids)
        for destination_id in list(self._tasks):
            if destination_id not in keep:
                self.cancel(destination_id)

    async def resolve_all(
        self,
        destinations: list["DestinationRecord"],
        language: Language = PRIMARY_LANGUAGE,
    ) -> dict[str, ImageResolution]:
        """
        Resolve images for the given destinations concurrently.

        Destinations already resolved for the same key are not looked up again.

        Returns:
            Dict mapping destination id to its image state
        """
        tasks = [self.ensure(destination, language) for destination in destinations]
        # Finished tasks may belong to an earlier event loop
        pending = [task for task in tasks if not task.done()]
        await asyncio.gather(*pending, return_exceptions=True)
        return {d.id: self.state(d.id) for d in destinations}

    async def close(self) -> None:
        """Cancel all outstanding resolutions."""
        pending = [task for task in self._tasks.values() if not task.done()]
        for destination_id in list(self._tasks):
            self.cancel(destination_id)
        await asyncio.gather(*pending, return_exceptions=True)
