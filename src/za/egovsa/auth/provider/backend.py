"""Client for the eGovSA REST backend."""

import asyncio
import logging
from typing import Optional

import aiohttp
from aiohttp import ClientSession
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from za.egovsa.auth.app.config import Settings
from za.egovsa.auth.errors import BackendError

logger = logging.getLogger(__name__)


class WelcomeUserInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    phone: Optional[str] = None
    full_name: str = Field(alias="fullName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")


class WelcomeResponse(BaseModel):
    message: str
    user: WelcomeUserInfo


class BackendClient:
    def __init__(self, http_session: ClientSession, settings: Settings) -> None:
        self.http_session = http_session
        self.base_url = settings.api_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=settings.network_timeout)

    async def fetch_welcome(self, user_id: str) -> WelcomeResponse:
        """Fetch the home screen welcome message and user summary.

        Raises:
            BackendError: On network failure, a non-200 status or an unexpected body
        """
        url = f"{self.base_url}/api/home/welcome/{user_id}"
        try:
            async with self.http_session.get(url, timeout=self.timeout) as response:
                if response.status != 200:
                    raise BackendError(f"Welcome request failed: {response.status}")
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Welcome request to %s failed: %s", url, e)
            raise BackendError(f"Welcome request failed: {e}") from e

        try:
            return WelcomeResponse.model_validate(body)
        except ValidationError as e:
            raise BackendError("Unexpected welcome response") from e
