import contextlib
import logging
from typing import AsyncIterator

import aiohttp
import redis.asyncio as redis
import sentry_sdk
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from za.egovsa.auth.app.config import Settings
from za.egovsa.auth.app.context import AuthContext
from za.egovsa.auth.app.metrics import TelegrafCompatibilityClient, create_metrics_client
from za.egovsa.auth.app.profiles import ProfileFetcher, ProfileRepository
from za.egovsa.auth.app.session_store import SessionStore
from za.egovsa.auth.provider.backend import BackendClient
from za.egovsa.auth.provider.client import AuthProviderClient
from za.egovsa.auth.vault.pin import PinVault
from za.egovsa.auth.vault.storage import RedisSecureStorage

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def auth_context(settings: Settings) -> AsyncIterator[AuthContext]:
    """Build an AuthContext and every resource behind it, and tear them down on exit.

    The context is initialized (session restored, profile loaded) before it is yielded;
    the launch decision is left to the caller.
    """
    logger.info("Starting up")

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn)

    engine = create_async_engine(str(settings.pg_dsn))
    database_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logger.debug("Starting request: %s %s", params.method, params.url)

        async def on_request_end(
            session, trace_config_ctx, params: aiohttp.TraceRequestEndParams
        ):
            logger.debug(
                "Ending request: %s %s %s",
                params.method,
                params.url,
                params.response.status,
            )

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    http_session = aiohttp.ClientSession(trace_configs=[trace_config])
    redis_client = redis.Redis.from_url(str(settings.redis_dsn))

    metrics_client = create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        debug=settings.debug,
    )
    if isinstance(metrics_client, TelegrafCompatibilityClient):
        await metrics_client.connect()

    storage = RedisSecureStorage(
        redis_client, settings.encryption_key, namespace=settings.secure_store_namespace
    )
    provider = AuthProviderClient(http_session, storage, settings)
    profiles = ProfileFetcher(
        ProfileRepository(database_session_maker),
        timeout=settings.network_timeout,
        metrics_client=metrics_client,
    )
    context = AuthContext(
        sessions=SessionStore(provider, profiles, metrics_client=metrics_client),
        profiles=profiles,
        vault=PinVault(storage),
        backend=BackendClient(http_session, settings),
        metrics_client=metrics_client,
    )

    try:
        await context.initialize()
        logger.info("Startup complete")
        yield context
    finally:
        logger.info("Shutting down")
        await context.close()
        await metrics_client.close()
        await http_session.close()
        await redis_client.aclose()
        await engine.dispose()
