from typing import Iterable, Optional

from aiohttp import ClientResponse, ClientResponseError, ClientSession, ClientTimeout

from meta_quote_engine.config import settings
from meta_quote_engine.models.quote_models import AggregatorFeature
from meta_quote_engine.providers.base_provider import BaseProvider
from meta_quote_engine.utils.errors import NotConfiguredError, ParseResponseError
from meta_quote_engine.utils.logger import get_logger

logger = get_logger(__name__)


class HttpProvider(BaseProvider):
    """
    Base for adapters backed by a JSON HTTP API.

    Subclasses build the request in try_fetch_quote and use _get_response/_post_response.
    Non 2xx answers raise ClientResponseError carrying the decoded body as message,
    which handle_exception turns into an AggregationProviderError.
    """
    REQUEST_TIMEOUT = settings.REQUEST_TIMEOUT
    aiohttp_session: ClientSession

    def __init__(
        self,
        session: Optional[ClientSession] = None,
        negotiated_features: Iterable[AggregatorFeature] = (),
        timeout_ms: Optional[int] = None,
    ):
        super().__init__(negotiated_features=negotiated_features, timeout_ms=timeout_ms)
        if not session:
            from meta_quote_engine.utils.httputils import CLIENT_SESSION

            if CLIENT_SESSION is None:
                raise NotConfiguredError(
                    f'{self.name()} has no session. Pass one or call setup_client_session() first'
                )
            self.aiohttp_session = CLIENT_SESSION
        else:
            self.aiohttp_session = session

    @property
    def request_timeout(self) -> ClientTimeout:
        return ClientTimeout(total=self.REQUEST_TIMEOUT)

    async def _get_response(
        self, url: str, params: Optional[dict] = None, headers: Optional[dict] = None
    ) -> dict:
        async with self.aiohttp_session.get(
            url, params=params, headers=headers, timeout=self.request_timeout
        ) as response:
            logger.debug(f'Request GET {response.url}')
            return await self._read_json(response)

    async def _post_response(
        self, url: str, json: Optional[dict] = None, headers: Optional[dict] = None
    ) -> dict:
        async with self.aiohttp_session.post(
            url, json=json, headers=headers, timeout=self.request_timeout
        ) as response:
            logger.debug(f'Request POST {response.url}')
            return await self._read_json(response)

    async def _read_json(self, response: ClientResponse) -> dict:
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            if response.status < 400:
                raise ParseResponseError(self.name(), str(e), url=str(response.url))
            # Error pages from proxies and gateways are usually not JSON.
            data = await response.text()
        try:
            response.raise_for_status()
        except ClientResponseError as e:
            # Fix bug with HTTP status code 0.
            status = 500 if e.status not in range(100, 600) else e.status
            raise ClientResponseError(
                request_info=e.request_info,
                history=e.history,
                status=status,
                message=str(data),
                headers=e.headers,
            )
        return data
