"""Unit tests for bridge_client module.

Tests HueBridgeClient base URL resolution, session management, request error
mapping and collection decoding.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from hue_mixer.bridge_client import HueBridgeClient
from hue_mixer.exceptions import BridgeConfigError, BridgeResponseError, BridgeTransportError
from hue_mixer.models import ResourceKind
from hue_mixer.settings import BridgeSettings


class FakeResponse:
    """Async context manager standing in for aiohttp's response"""

    def __init__(self, body=None, status=200, json_error=None):
        self.body = body
        self.status = status
        self.json_error = json_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=MagicMock(),
                history=(),
                status=self.status,
                message="Internal Server Error",
            )

    async def json(self, content_type="application/json"):
        if self.json_error is not None:
            raise self.json_error
        return self.body


@pytest.fixture
def settings():
    return BridgeSettings(address="192.168.1.2", username="abc123")


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.closed = False
    mock_session.close = AsyncMock()
    mock_session.request = MagicMock(return_value=FakeResponse({}))
    return mock_session


@pytest.fixture
def client(settings, session):
    api = HueBridgeClient(settings)
    api.http_session = session
    return api


class TestBaseUrl:
    """Tests for base URL resolution"""

    @pytest.mark.asyncio
    async def test_base_url_from_settings(self, client):
        """Test that the URL is built from address and username"""
        assert await client.base_url() == "http://192.168.1.2/api/abc123"

    @pytest.mark.asyncio
    async def test_missing_address(self):
        """Test that a missing address raises BridgeConfigError naming it"""
        api = HueBridgeClient(BridgeSettings(username="abc123"))

        with pytest.raises(BridgeConfigError) as exc_info:
            _ = await api.base_url()

        assert exc_info.value.missing == "address"
        assert str(exc_info.value) == "No Philips Hue IP given to connect to."

    @pytest.mark.asyncio
    async def test_missing_username(self):
        """Test that a missing username raises BridgeConfigError naming it"""
        api = HueBridgeClient(BridgeSettings(address="192.168.1.2"))

        with pytest.raises(BridgeConfigError) as exc_info:
            _ = await api.base_url()

        assert exc_info.value.missing == "username"

    @pytest.mark.asyncio
    async def test_config_error_is_cached(self, session):
        """Test that every later call fails with the same error and no request is made"""
        api = HueBridgeClient(BridgeSettings())
        api.http_session = session

        with pytest.raises(BridgeConfigError) as first:
            _ = await api.list_lights()
        with pytest.raises(BridgeConfigError) as second:
            _ = await api.write_light_state("1", {"on": True})

        assert first.value is second.value
        session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_awaitable_settings_resolved_once(self):
        """Test that settings still being loaded are awaited a single time"""
        loader = AsyncMock(return_value=BridgeSettings(address="10.0.0.5", username="u"))
        api = HueBridgeClient(loader())

        assert await api.base_url() == "http://10.0.0.5/api/u"
        assert await api.base_url() == "http://10.0.0.5/api/u"

        assert loader.await_count == 1
        assert api.settings.address == "10.0.0.5"


class TestSession:
    """Tests for aiohttp session management"""

    @pytest.mark.asyncio
    async def test_check_session_creates_new_session(self, settings):
        """Test that _check_session creates a session if none exists"""
        with patch("hue_mixer.bridge_client.aiohttp.ClientSession") as mock_session_class:
            mock_session = MagicMock()
            mock_session_class.return_value = mock_session
            api = HueBridgeClient(settings)

            result = await api._check_session()

            assert result is mock_session
            assert api.http_session is mock_session

    @pytest.mark.asyncio
    async def test_check_session_reuses_open_session(self, client, session):
        """Test that an open session is not recreated"""
        with patch("hue_mixer.bridge_client.aiohttp.ClientSession") as mock_session_class:
            result = await client._check_session()

            assert result is session
            assert mock_session_class.call_count == 0

    @pytest.mark.asyncio
    async def test_close_session(self, client, session):
        """Test closing the HTTP session"""
        await client.close()

        session.close.assert_awaited_once()
        assert client.http_session is None


class TestReads:
    """Tests for collection reads"""

    @pytest.mark.asyncio
    async def test_list_lights(self, client, session):
        """Test GET /lights decoding"""
        session.request.return_value = FakeResponse(
            {"1": {"name": "Desk", "state": {"on": True, "bri": 127, "hue": 100}}},
        )

        lights = await client.list_lights()

        assert lights["1"].kind is ResourceKind.LIGHT
        assert lights["1"].bri == 127
        args, kwargs = session.request.call_args
        assert args == ("GET", "http://192.168.1.2/api/abc123/lights")
        assert kwargs["json"] is None
        assert kwargs["timeout"].total is None

    @pytest.mark.asyncio
    async def test_api_timeout_applied(self, session):
        """Test that a configured api_timeout bounds the request"""
        api = HueBridgeClient(BridgeSettings(address="h", username="u", api_timeout=5))
        api.http_session = session

        _ = await api.list_groups()

        assert session.request.call_args.kwargs["timeout"].total == 5

    @pytest.mark.asyncio
    async def test_list_scenes(self, client, session):
        """Test GET /scenes decoding"""
        session.request.return_value = FakeResponse({"abc": {"name": "Relax", "group": "3"}})

        scenes = await client.list_scenes()

        assert scenes["abc"].group == "3"

    @pytest.mark.asyncio
    async def test_error_body_raises_response_error(self, client, session):
        """Test that an HTTP 200 carrying an error list is rejected"""
        session.request.return_value = FakeResponse(
            [{"error": {"type": 1, "address": "/lights", "description": "unauthorized user"}}],
        )

        with pytest.raises(BridgeResponseError) as exc_info:
            _ = await client.list_lights()

        assert exc_info.value.errors[0]["type"] == 1
        assert "unauthorized user" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_object_body(self, client, session):
        """Test that a collection read answered with a list is a transport error"""
        session.request.return_value = FakeResponse([{"success": {}}])

        with pytest.raises(BridgeTransportError) as exc_info:
            _ = await client.list_groups()

        assert exc_info.value.path == "/groups"

    @pytest.mark.asyncio
    async def test_http_error_status(self, client, session):
        """Test that non-2xx statuses map to BridgeTransportError with the status"""
        session.request.return_value = FakeResponse(status=500)

        with pytest.raises(BridgeTransportError) as exc_info:
            _ = await client.list_lights()

        assert exc_info.value.status == 500
        assert exc_info.value.method == "GET"

    @pytest.mark.asyncio
    async def test_connection_error(self, client, session):
        """Test that connection failures map to BridgeTransportError without a status"""
        session.request.side_effect = aiohttp.ClientConnectionError("Connection refused")

        with pytest.raises(BridgeTransportError) as exc_info:
            _ = await client.list_lights()

        assert exc_info.value.status is None
        assert "Connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, session):
        """Test that an unparsable body maps to BridgeTransportError"""
        session.request.return_value = FakeResponse(json_error=ValueError("Expecting value"))

        with pytest.raises(BridgeTransportError):
            _ = await client.list_scenes()


class TestWrites:
    """Tests for state writes"""

    @pytest.mark.asyncio
    async def test_write_light_state(self, client, session):
        """Test PUT /lights/<id>/state"""
        session.request.return_value = FakeResponse([{"success": {"/lights/1/state/bri": 127}}])

        result = await client.write_light_state("1", {"bri": 127, "transitiontime": 1})

        assert result == [{"success": {"/lights/1/state/bri": 127}}]
        session.request.assert_called_once()
        args, kwargs = session.request.call_args
        assert args == ("PUT", "http://192.168.1.2/api/abc123/lights/1/state")
        assert kwargs["json"] == {"bri": 127, "transitiontime": 1}

    @pytest.mark.asyncio
    async def test_write_group_action(self, client, session):
        """Test PUT /groups/<id>/action"""
        session.request.return_value = FakeResponse([{"success": {}}])

        _ = await client.write_group_action("4", {"on": True, "scene": "abc"})

        assert session.request.call_args.args == ("PUT", "http://192.168.1.2/api/abc123/groups/4/action")

    @pytest.mark.asyncio
    async def test_rejected_write(self, client, session):
        """Test that a write refused by the bridge raises BridgeResponseError"""
        session.request.return_value = FakeResponse(
            [{"error": {"type": 201, "address": "/lights/1/state/bri", "description": "device is off"}}],
        )

        with pytest.raises(BridgeResponseError):
            _ = await client.write_light_state("1", {"bri": 10})
