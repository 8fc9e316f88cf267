"""
Unit tests for the REST backend client in za.egovsa.auth.provider.backend
"""

import pytest
import aiohttp
from unittest.mock import Mock

from za.egovsa.auth.app.config import Settings
from za.egovsa.auth.errors import BackendError
from za.egovsa.auth.provider.backend import BackendClient
from tests.test_helpers import create_mock_http_session, create_mock_response


@pytest.fixture
def settings():
    return Settings(api_url="https://api.example.test/")


WELCOME_BODY = {
    "message": "Sawubona, Thandi",
    "user": {
        "id": "user-1",
        "firstName": "Thandi",
        "lastName": "Nkosi",
        "email": "thandi@example.co.za",
        "phone": "+27821234567",
        "fullName": "Thandi Nkosi",
        "avatarUrl": None,
    },
}


class TestFetchWelcome:
    async def test_welcome_parsed(self, settings):
        http_session = create_mock_http_session(create_mock_response(200, WELCOME_BODY))
        client = BackendClient(http_session, settings)

        welcome = await client.fetch_welcome("user-1")

        args, _ = http_session.get.call_args
        assert args == ("https://api.example.test/api/home/welcome/user-1",)
        assert welcome.message == "Sawubona, Thandi"
        assert welcome.user.full_name == "Thandi Nkosi"
        assert welcome.user.avatar_url is None

    async def test_non_200_raises(self, settings):
        http_session = create_mock_http_session(create_mock_response(404, {"error": "nope"}))
        with pytest.raises(BackendError):
            await BackendClient(http_session, settings).fetch_welcome("user-1")

    async def test_network_failure_raises(self, settings):
        http_session = create_mock_http_session()
        http_session.get = Mock(side_effect=aiohttp.ClientConnectionError("down"))
        with pytest.raises(BackendError):
            await BackendClient(http_session, settings).fetch_welcome("user-1")

    async def test_unexpected_body_raises(self, settings):
        http_session = create_mock_http_session(
            create_mock_response(200, {"message": "hi"})
        )
        with pytest.raises(BackendError):
            await BackendClient(http_session, settings).fetch_welcome("user-1")
