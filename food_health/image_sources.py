"""
Image lookup for suggested alternatives.

Strategies are tried in order; each returns an image URL or None ("try next").
ImageResolver always ends with PlaceholderImageSource, so resolution never fails:
missing credentials, HTTP errors and generation failures degrade to a placeholder.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

import httpx

from food_health.config import (
    IMAGE_GEN_MODEL,
    IMAGE_GEN_SIZE,
    IMAGE_SOURCE,
    PLACEHOLDER_IMAGE_SIZE,
    PLACEHOLDER_IMAGE_URL,
    UNSPLASH_ACCESS_KEY,
    UNSPLASH_API_URL,
    UNSPLASH_TIMEOUT_S,
)
from food_health.openai_client import get_openai_client
from food_health.prompts import IMAGE_PROMPT
from food_health.schemas import AlternativeItem

logger = logging.getLogger(__name__)


def placeholder_seed(name: str) -> int:
    return sum(ord(char) for char in name)


def placeholder_image_url(name: str) -> str:
    size = PLACEHOLDER_IMAGE_SIZE
    return f"{PLACEHOLDER_IMAGE_URL}/seed/{placeholder_seed(name)}/{size}/{size}"


class ImageSource(Protocol):
    name: str

    async def fetch(self, food_name: str) -> Optional[str]:
        ...


class PlaceholderImageSource:
    name = "placeholder"

    async def fetch(self, food_name: str) -> Optional[str]:
        return placeholder_image_url(food_name)


class UnsplashImageSource:
    """Keyword search against the Unsplash photo API."""

    name = "unsplash"

    def __init__(
        self,
        access_key: Optional[str] = UNSPLASH_ACCESS_KEY,
        api_url: str = UNSPLASH_API_URL,
        timeout: float = UNSPLASH_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_key = access_key
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, food_name: str) -> Optional[str]:
        if not self.access_key:
            logger.warning("Unsplash access key is not configured, skipping image search")
            return None

        params = {
            "query": food_name,
            "per_page": 1,
            "orientation": "squarish",
            "client_id": self.access_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.api_url, params=params)
        except httpx.HTTPError as e:
            logger.error("Failed to fetch image from Unsplash for %r: %s", food_name, e)
            return None

        if response.status_code != 200:
            logger.error(
                "Unsplash API error for %r: status=%s", food_name, response.status_code
            )
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Unsplash returned invalid JSON for %r: %s", food_name, e)
            return None

        results = data.get("results") or []
        if not results:
            return None
        return (results[0].get("urls") or {}).get("regular") or None


class GeneratedImageSource:
    """Image generation through the OpenAI images API."""

    name = "generated"

    def __init__(
        self,
        client_factory: Callable = get_openai_client,
        model: str = IMAGE_GEN_MODEL,
        size: str = IMAGE_GEN_SIZE,
    ):
        self._client_factory = client_factory
        self.model = model
        self.size = size

    async def fetch(self, food_name: str) -> Optional[str]:
        try:
            response = await self._client_factory().images.generate(
                model=self.model,
                prompt=IMAGE_PROMPT.format(name=food_name),
                n=1,
                size=self.size,
            )
        except Exception as e:
            logger.error("Image generation failed for %r: %s", food_name, e)
            return None

        if not response.data:
            return None
        image = response.data[0]
        if getattr(image, "url", None):
            return image.url
        if getattr(image, "b64_json", None):
            return f"data:image/png;base64,{image.b64_json}"
        return None


class ImageResolver:
    """Ordered fallback chain that always terminates in a placeholder."""

    def __init__(self, strategies: Optional[list] = None):
        strategies = list(strategies or [])
        if not strategies or not isinstance(strategies[-1], PlaceholderImageSource):
            strategies.append(PlaceholderImageSource())
        self.strategies = strategies

    async def resolve(self, food_name: str) -> str:
        for strategy in self.strategies:
            try:
                url = await strategy.fetch(food_name)
            except Exception:
                logger.exception("Image source %s raised for %r", strategy.name, food_name)
                continue
            if url:
                return url
            logger.info("Image source %s found nothing for %r, trying next", strategy.name, food_name)
        return placeholder_image_url(food_name)

    async def attach_images(self, items: list[AlternativeItem]) -> list[AlternativeItem]:
        """Fill image_url of every item lacking one; lookups run concurrently."""
        pending = [item for item in items if not item.image_url]
        urls = await asyncio.gather(*(self.resolve(item.name) for item in pending))
        for item, url in zip(pending, urls):
            item.image_url = url
        return items


def build_image_resolver(source: str = IMAGE_SOURCE) -> ImageResolver:
    if source == "placeholder":
        return ImageResolver()
    if source == "unsplash":
        return ImageResolver([UnsplashImageSource()])
    if source == "generated":
        return ImageResolver([GeneratedImageSource()])
    raise ValueError(f"Unknown IMAGE_SOURCE: {source!r}")
