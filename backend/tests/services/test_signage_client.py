import httpx
import pytest

from app.services.signage import SignageClient, SignageClientError


def _client(handler) -> SignageClient:
    return SignageClient("http://signage.test/", token="tok", transport=httpx.MockTransport(handler))


class TestSignageClient:
    def test_requires_base_url(self):
        with pytest.raises(SignageClientError) as exc_info:
            SignageClient("")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_list_players_maps_fields(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/players"
            assert request.url.params["per_page"] == "100"
            assert request.headers["x-access-token"] == "tok"
            return httpx.Response(
                200,
                json={"data": {"objects": [{"_id": "p-1", "name": "Lobby", "isConnected": True, "lastReported": "now"}]}},
            )

        players = await _client(handler).list_players()
        assert len(players) == 1
        assert players[0].id == "p-1"
        assert players[0].status == "online"
        assert players[0].last_reported == "now"

    @pytest.mark.asyncio
    async def test_missing_player_is_none(self):
        players = await _client(lambda request: httpx.Response(404)).get_player("p-9")
        assert players is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        with pytest.raises(SignageClientError) as exc_info:
            await _client(lambda request: httpx.Response(500, json={})).list_players()
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_unreachable_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SignageClientError, match="unreachable"):
            await _client(handler).list_players()

    @pytest.mark.asyncio
    async def test_control_rejects_unknown_action(self):
        with pytest.raises(ValueError):
            await _client(lambda request: httpx.Response(200, json={})).control_playback("p-1", "rewind")

    @pytest.mark.asyncio
    async def test_control_posts_action(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/playlistmedia/p-1/pause"
            return httpx.Response(200, json={"stat_message": "paused", "data": {"ok": True}})

        result = await _client(handler).control_playback("p-1", "pause")
        assert result == {"message": "paused", "data": {"ok": True}}
