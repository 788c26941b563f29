from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

from aiohttp import ClientResponseError, RequestInfo
from yarl import URL


def mock_response(
    payload: Any = None,
    status: int = 200,
    url: str = 'https://api.stub.exchange/quote',
    json_error: Optional[Exception] = None,
    text: str = '',
) -> Mock:
    response = Mock()
    response.url = URL(url)
    response.status = status
    response.json = AsyncMock(return_value=payload, side_effect=json_error)
    response.text = AsyncMock(return_value=text)
    if status >= 400:
        response.raise_for_status = Mock(
            side_effect=ClientResponseError(
                RequestInfo(url=URL(url), method='GET', headers=None),
                (),
                status=status,
                message='Bad Request',
            )
        )
    else:
        response.raise_for_status = Mock()
    return response


def mock_session(response: Mock) -> MagicMock:
    """aiohttp.ClientSession look-alike whose get/post context managers yield response."""
    session = MagicMock()
    for method in ('get', 'post'):
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        getattr(session, method).return_value = context
    return session
