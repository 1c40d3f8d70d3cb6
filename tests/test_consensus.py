import httpx
import pytest

from consensus import HttpConsensusPublisher, LoggingConsensusPublisher, get_publisher
from utils.errors import PublishError


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_report_is_posted_to_every_peer():
    received = []

    def handler(request):
        received.append((request.url.host, request.url.path, request.content))
        return httpx.Response(200, json={"accepted": True})

    publisher = HttpConsensusPublisher(["http://a.test/", "http://b.test"], client=_client(handler))
    await publisher.publish('{"run_id": "r1"}')

    assert received == [
        ("a.test", "/api/consensus/report", b'{"run_id": "r1"}'),
        ("b.test", "/api/consensus/report", b'{"run_id": "r1"}'),
    ]


@pytest.mark.asyncio
async def test_failing_peer_raises_after_all_peers_attempted():
    hosts = []

    def handler(request):
        hosts.append(request.url.host)
        if request.url.host == "a.test":
            return httpx.Response(500)
        return httpx.Response(200)

    publisher = HttpConsensusPublisher(["http://a.test", "http://b.test"], client=_client(handler))

    with pytest.raises(PublishError, match="1/2 peers failed"):
        await publisher.publish("{}")
    assert hosts == ["a.test", "b.test"]


def test_get_publisher_selects_by_peers():
    assert isinstance(get_publisher([]), LoggingConsensusPublisher)
    assert isinstance(get_publisher(["http://a.test"]), HttpConsensusPublisher)
