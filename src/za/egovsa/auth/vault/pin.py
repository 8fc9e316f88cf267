"""Local PIN vault.

Decides, without any network call, whether this device can skip full re-authentication.
The vault stores the PIN surrogate exactly as given; checking that it is four digits is
the caller's job.
"""

import hmac
import logging
from typing import Optional

from za.egovsa.auth.app.config import USER_EMAIL_KEY, USER_PIN_KEY
from za.egovsa.auth.vault.storage import SecureStorage

logger = logging.getLogger(__name__)


class PinVault:
    """
    PIN surrogate and cached email on top of a SecureStorage.

    Every method may raise SecureStorageFailure when the underlying store fails. A missing
    PIN and a wrong PIN are regular outcomes and never raise.
    """

    def __init__(self, storage: SecureStorage) -> None:
        self.storage = storage

    async def has_pin(self) -> bool:
        return await self.storage.get_item(USER_PIN_KEY) is not None

    async def verify(self, candidate: str) -> bool:
        stored = await self.storage.get_item(USER_PIN_KEY)
        if stored is None:
            return False
        return hmac.compare_digest(stored.encode(), candidate.encode())

    async def save(self, pin: str) -> None:
        await self.storage.set_item(USER_PIN_KEY, pin)
        logger.info("PIN surrogate saved")

    async def get_email(self) -> Optional[str]:
        return await self.storage.get_item(USER_EMAIL_KEY)

    async def remember_email(self, email: str) -> None:
        await self.storage.set_item(USER_EMAIL_KEY, email)

    async def clear(self) -> None:
        """Delete the PIN surrogate and the cached email."""
        await self.storage.delete_item(USER_PIN_KEY)
        await self.storage.delete_item(USER_EMAIL_KEY)
        logger.info("Stored credentials cleared")
