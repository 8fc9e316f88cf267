"""Device-local secure key-value storage.

The auth core only needs three operations from the device secure store: get, set and
delete a string by key. RedisSecureStorage keeps every entry in one Redis hash and encrypts
each value with Fernet, so a value that was tampered with, or encrypted with another Fernet key,
fails to decrypt and is reported as a SecureStorageFailure.
"""

import logging
from typing import Optional, Protocol, Union

from cryptography.fernet import Fernet, InvalidToken
import redis.asyncio as redis
from redis.exceptions import RedisError

from za.egovsa.auth.errors import SecureStorageFailure

logger = logging.getLogger(__name__)


class SecureStorage(Protocol):
    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def delete_item(self, key: str) -> None: ...


def _to_bytes(value: Union[bytes, str]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode()


class RedisSecureStorage:
    """Fernet-encrypted secure store kept in a single Redis hash."""

    def __init__(
        self,
        redis_client: redis.Redis,
        encryption_key: Fernet,
        namespace: str = "egovsa:secure_store",
    ) -> None:
        self.redis_client = redis_client
        self.encryption_key = encryption_key
        self.namespace = namespace

    async def get_item(self, key: str) -> Optional[str]:
        try:
            raw = await self.redis_client.hget(self.namespace, key)
        except RedisError as e:
            raise SecureStorageFailure(f"Unable to read {key}", key=key) from e

        if raw is None:
            return None

        try:
            return self.encryption_key.decrypt(_to_bytes(raw)).decode()
        except (InvalidToken, UnicodeDecodeError) as e:
            logger.error("Secure store entry %s cannot be decrypted", key)
            raise SecureStorageFailure(f"Corrupted entry {key}", key=key) from e

    async def set_item(self, key: str, value: str) -> None:
        token = self.encryption_key.encrypt(value.encode())
        try:
            await self.redis_client.hset(self.namespace, key, token)
        except RedisError as e:
            raise SecureStorageFailure(f"Unable to write {key}", key=key) from e

    async def delete_item(self, key: str) -> None:
        try:
            await self.redis_client.hdel(self.namespace, key)
        except RedisError as e:
            raise SecureStorageFailure(f"Unable to delete {key}", key=key) from e
