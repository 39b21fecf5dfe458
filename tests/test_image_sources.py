from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from food_health.image_sources import (
    GeneratedImageSource,
    ImageResolver,
    PlaceholderImageSource,
    UnsplashImageSource,
    build_image_resolver,
    placeholder_image_url,
    placeholder_seed,
)
from food_health.schemas import AlternativeItem

UNSPLASH_URL = "https://api.unsplash.test/search/photos"


def unsplash_source(handler, access_key="test-key"):
    return UnsplashImageSource(
        access_key=access_key,
        api_url=UNSPLASH_URL,
        transport=httpx.MockTransport(handler),
    )


def test_placeholder_is_seeded_by_character_codes():
    assert placeholder_seed("Apple") == 498
    assert "/seed/498/" in placeholder_image_url("Apple")
    assert placeholder_image_url("Apple") == placeholder_image_url("Apple")


@pytest.mark.asyncio
async def test_unsplash_returns_first_result():
    def handler(request):
        assert request.url.params["query"] == "Greek Salad"
        assert request.url.params["client_id"] == "test-key"
        return httpx.Response(
            200, json={"results": [{"urls": {"regular": "https://images.unsplash.test/salad.jpg"}}]}
        )

    resolver = ImageResolver([unsplash_source(handler)])

    assert await resolver.resolve("Greek Salad") == "https://images.unsplash.test/salad.jpg"


@pytest.mark.asyncio
async def test_unsplash_without_key_is_skipped():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    resolver = ImageResolver([unsplash_source(handler, access_key=None)])

    assert await resolver.resolve("Apple") == placeholder_image_url("Apple")
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="server error"),
        httpx.Response(200, json={"results": []}),
        httpx.Response(200, text="not json"),
    ],
)
async def test_unsplash_failures_fall_back_to_placeholder(response):
    resolver = ImageResolver([unsplash_source(lambda request: response)])

    assert await resolver.resolve("Apple") == placeholder_image_url("Apple")


@pytest.mark.asyncio
async def test_unsplash_network_error_falls_back_to_placeholder():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    resolver = ImageResolver([unsplash_source(handler)])

    assert await resolver.resolve("Apple") == placeholder_image_url("Apple")


@pytest.mark.asyncio
async def test_generated_image_url():
    generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url="https://gen.test/a.png", b64_json=None)])
    )
    client = SimpleNamespace(images=SimpleNamespace(generate=generate))
    source = GeneratedImageSource(client_factory=lambda: client, model="image-model", size="512x512")

    assert await ImageResolver([source]).resolve("Lentil Soup") == "https://gen.test/a.png"
    kwargs = generate.call_args.kwargs
    assert kwargs["model"] == "image-model"
    assert "Lentil Soup" in kwargs["prompt"]


@pytest.mark.asyncio
async def test_generated_image_base64():
    generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url=None, b64_json="aGVsbG8=")])
    )
    client = SimpleNamespace(images=SimpleNamespace(generate=generate))
    source = GeneratedImageSource(client_factory=lambda: client)

    assert await source.fetch("Soup") == "data:image/png;base64,aGVsbG8="


@pytest.mark.asyncio
async def test_generation_failure_falls_back_to_placeholder():
    def missing_client():
        raise RuntimeError("OPENAI_API_KEY is not set")

    resolver = ImageResolver([GeneratedImageSource(client_factory=missing_client)])

    assert await resolver.resolve("Apple") == placeholder_image_url("Apple")


@pytest.mark.asyncio
async def test_raising_strategy_does_not_escape():
    class BrokenSource:
        name = "broken"

        async def fetch(self, food_name):
            raise KeyError("urls")

    resolver = ImageResolver([BrokenSource()])

    assert await resolver.resolve("Apple") == placeholder_image_url("Apple")


def test_resolver_always_ends_with_placeholder():
    assert isinstance(ImageResolver().strategies[-1], PlaceholderImageSource)
    resolver = ImageResolver([UnsplashImageSource(access_key=None), PlaceholderImageSource()])
    assert len(resolver.strategies) == 2


@pytest.mark.asyncio
async def test_attach_images_keeps_existing_urls():
    items = [
        AlternativeItem(name="Apple"),
        AlternativeItem(name="Pear", image_url="https://cdn.test/pear.jpg"),
        AlternativeItem(name="Plum"),
    ]

    await ImageResolver().attach_images(items)

    assert items[0].image_url == placeholder_image_url("Apple")
    assert items[1].image_url == "https://cdn.test/pear.jpg"
    assert items[2].image_url == placeholder_image_url("Plum")


def test_build_image_resolver():
    assert isinstance(build_image_resolver("unsplash").strategies[0], UnsplashImageSource)
    assert isinstance(build_image_resolver("generated").strategies[0], GeneratedImageSource)
    assert len(build_image_resolver("placeholder").strategies) == 1
    with pytest.raises(ValueError):
        build_image_resolver("flickr")
