import os
from typing import Optional

from aiohttp import ClientSession, ClientTimeout

from meta_quote_engine.config import settings

# Shared aiohttp.ClientSession used by HttpProvider adapters built without their own session.
CLIENT_SESSION: Optional[ClientSession] = None


class ProxiedHttpSession(ClientSession):
    """
    aiohttp.ClientSession that sends provider requests through PROXY_URL when it is set.
    `trust_env=True` is not used because it would also proxy APM traffic.
    """

    async def _request(self, *args, **kwargs):
        proxy = kwargs.pop('proxy', os.environ.get('PROXY_URL'))
        return await super()._request(*args, proxy=proxy, **kwargs)


async def setup_client_session() -> ClientSession:
    """Set up the shared aiohttp.ClientSession instance.

    aiohttp recommends that only one ClientSession exist for the lifetime of an application.
    See: https://docs.aiohttp.org/en/stable/client_quickstart.html#make-a-request

    """
    global CLIENT_SESSION  # pylint: disable=global-statement
    CLIENT_SESSION = ProxiedHttpSession(
        timeout=ClientTimeout(total=settings.REQUEST_TIMEOUT)
    )
    return CLIENT_SESSION


async def teardown_client_session() -> None:
    """Close the shared aiohttp.ClientSession."""
    global CLIENT_SESSION  # pylint: disable=global-statement
    if CLIENT_SESSION is not None:
        await CLIENT_SESSION.close()
    CLIENT_SESSION = None
