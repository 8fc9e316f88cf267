"""Client for the hosted auth provider.

Talks to a GoTrue-compatible REST API under {provider_url}/auth/v1 and owns the provider
session: it persists the session in the secure store so it survives restarts, refreshes it
when it has expired, and publishes a SessionChange for every sign-in, refresh and sign-out.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession
from pydantic import ValidationError

from za.egovsa.auth.app.config import PROVIDER_SESSION_KEY, Settings
from za.egovsa.auth.errors import ProviderRejected, ProviderUnreachable
from za.egovsa.auth.model.session import AuthChangeEvent, Session, SessionChange
from za.egovsa.auth.provider.events import SessionChannel, Subscription
from za.egovsa.auth.vault.storage import SecureStorage

logger = logging.getLogger(__name__)


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        for field in ("msg", "error_description", "message", "error"):
            value = body.get(field)
            if value:
                return str(value)
    return "unknown error"


class AuthProviderClient:
    """
    Session-owning client for the auth provider.

    Args:
        http_session: Shared aiohttp client session
        storage: Secure store the session is persisted in
        settings: Provider URL, anon key and network timeout
        channel: Channel session changes are published on
    """

    def __init__(
        self,
        http_session: ClientSession,
        storage: SecureStorage,
        settings: Settings,
        channel: Optional[SessionChannel] = None,
    ) -> None:
        self.http_session = http_session
        self.storage = storage
        self.base_url = f"{settings.provider_url.rstrip('/')}/auth/v1"
        self.anon_key = settings.provider_anon_key
        self.timeout = aiohttp.ClientTimeout(total=settings.network_timeout)
        self.channel = channel if channel is not None else SessionChannel()

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        try:
            async with self.http_session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            ) as response:
                if response.status == 204:
                    return {}
                body = await response.json(content_type=None)
                if response.status >= 500:
                    raise ProviderUnreachable(
                        f"Provider error {response.status}: {_error_message(body)}"
                    )
                if response.status >= 400:
                    raise ProviderRejected(response.status, _error_message(body))
                return body or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderUnreachable(f"{method} {path} failed: {e}") from e

    def on_session_change(self) -> Subscription:
        """Subscribe to session changes. Call unsubscribe() on the result to stop."""
        return self.channel.subscribe()

    async def _load_session(self) -> Optional[Session]:
        raw = await self.storage.get_item(PROVIDER_SESSION_KEY)
        if raw is None:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable persisted session")
            await self.storage.delete_item(PROVIDER_SESSION_KEY)
            return None

    async def _store_session(self, session: Session, event: AuthChangeEvent) -> Session:
        await self.storage.set_item(PROVIDER_SESSION_KEY, session.model_dump_json())
        self.channel.publish(SessionChange(event=event, session=session))
        return session

    async def _remove_session(self) -> None:
        await self.storage.delete_item(PROVIDER_SESSION_KEY)
        self.channel.publish(SessionChange(event=AuthChangeEvent.SIGNED_OUT))

    async def get_session(self) -> Optional[Session]:
        """
        Return the persisted session, refreshing it first if it has expired.

        A refresh the provider rejects (revoked or expired refresh token) removes the
        persisted session and returns None.

        Raises:
            ProviderUnreachable: If an expired session could not be refreshed
        """
        session = await self._load_session()
        if session is None:
            return None

        if not session.is_expired():
            return session

        logger.info("Persisted session expired, refreshing")
        try:
            return await self.refresh_session(session)
        except ProviderRejected as e:
            logger.info("Provider rejected session refresh: %s", e.message)
            await self._remove_session()
            return None

    async def refresh_session(self, session: Session) -> Session:
        body = await self._request(
            "POST",
            "/token",
            payload={"refresh_token": session.refresh_token},
            params={"grant_type": "refresh_token"},
        )
        refreshed = Session.from_token_response(body)
        return await self._store_session(refreshed, AuthChangeEvent.TOKEN_REFRESHED)

    async def sign_in_with_otp(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        create_user: bool = True,
    ) -> None:
        """Ask the provider to send a one-time passcode by email or SMS."""
        if (email is None) == (phone is None):
            raise ValueError("Exactly one of email or phone is required")

        payload: Dict[str, Any] = {"create_user": create_user}
        if email is not None:
            payload["email"] = email
        else:
            payload["phone"] = phone
        await self._request("POST", "/otp", payload=payload)

    async def verify_otp(
        self,
        token: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Session:
        """
        Exchange a one-time passcode for a session.

        Raises:
            ProviderRejected: If the code is wrong or expired
            ProviderUnreachable: If the provider could not be reached
        """
        if (email is None) == (phone is None):
            raise ValueError("Exactly one of email or phone is required")

        payload: Dict[str, Any] = {"token": token}
        if email is not None:
            payload.update(type="email", email=email)
        else:
            payload.update(type="sms", phone=phone)

        body = await self._request("POST", "/verify", payload=payload)
        session = Session.from_token_response(body)
        return await self._store_session(session, AuthChangeEvent.SIGNED_IN)

    async def sign_out(self) -> None:
        """
        Invalidate the session at the provider and forget it locally.

        The local session is removed and SIGNED_OUT is published even when the provider
        call fails; the failure is re-raised afterwards.
        """
        session = await self._load_session()
        try:
            if session is not None:
                await self._request("POST", "/logout", access_token=session.access_token)
        finally:
            await self._remove_session()
