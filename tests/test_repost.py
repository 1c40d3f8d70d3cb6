import json

import httpx
import pytest

from processor import Repost, RepostHandler, TwitterPoster
from processor.repost import ContentPoster
from repositories import UserWatchProfile, WatchRegistry
from utils.errors import ThrottledError


class RecordingPoster(ContentPoster):
    def __init__(self):
        self.texts = []

    async def post(self, text, profile):
        self.texts.append(text)
        return "123"


@pytest.mark.asyncio
async def test_handler_posts_until_daily_limit(store):
    registry = WatchRegistry(store, mode="dynamic")
    profile = await registry.register_user("u1")
    profile.throttle.daily_limit = 1
    await registry.save_profile(profile)
    poster = RecordingPoster()
    handler = RepostHandler(registry, poster)

    assert await handler.handle(Repost(user_id="u1", text="first")) == "123"
    with pytest.raises(ThrottledError):
        await handler.handle(Repost(user_id="u1", text="second"))

    assert poster.texts == ["first"]


@pytest.mark.asyncio
async def test_handler_rejects_empty_text(store):
    handler = RepostHandler(WatchRegistry(store, mode="dynamic"), RecordingPoster())

    with pytest.raises(ValueError):
        await handler.handle(Repost(user_id="u1", text="   "))


@pytest.mark.asyncio
async def test_twitter_poster_sends_bearer_token():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"data": {"id": "987", "text": "gm"}})

    poster = TwitterPoster(
        token="tok",
        base_url="https://api.twitter.test/2/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    post_id = await poster.post("gm", UserWatchProfile(user_id="u1"))

    assert post_id == "987"
    assert captured == {
        "url": "https://api.twitter.test/2/tweets",
        "auth": "Bearer tok",
        "body": {"text": "gm"},
    }
