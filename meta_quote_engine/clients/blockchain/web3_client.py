import asyncio
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientTimeout
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import Web3Exception
from web3.types import RPCEndpoint

from meta_quote_engine.clients.blockchain.simulation_client import SimulationClient
from meta_quote_engine.config import settings
from meta_quote_engine.models.simulation_models import (
    CallResult,
    LogEntry,
    SimulatedBlock,
    TxData,
)
from meta_quote_engine.utils.errors import SimulationTransportError
from meta_quote_engine.utils.logger import LogArgs, get_logger

logger = get_logger(__name__)

SIMULATE_METHOD = RPCEndpoint('eth_simulateV1')
# ValueError covers RPC errors raised by web3 v6.
TRANSPORT_ERRORS = (ClientError, asyncio.TimeoutError, Web3Exception, ValueError)


def _to_int(value: Optional[str | int]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


class Web3SimulationClient(SimulationClient):
    """
    SimulationClient on top of the eth_simulateV1 RPC method.

    eth_simulateV1 is only served by some nodes (geth, reth, Alchemy, Tenderly, ...),
    not by most public RPCs.
    """

    def __init__(self, uri: str, chain_id: int, timeout: float = settings.WEB3_TIMEOUT):
        self.chain_id = chain_id
        self.uri = uri
        self.w3 = AsyncWeb3(
            AsyncHTTPProvider(
                endpoint_uri=uri,
                request_kwargs={'timeout': ClientTimeout(total=timeout)},
            )
        )

    def __repr__(self):
        return f'{self.__class__.__name__}(chain_id={self.chain_id})'

    async def simulate_calls(
        self,
        calls: List[TxData],
        account: str,
        state_overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        trace_transfers: bool = True,
    ) -> SimulatedBlock:
        payload = [
            {
                'blockStateCalls': [
                    {
                        'stateOverrides': self._encode_overrides(state_overrides or {}),
                        'calls': [self._encode_call(call, account) for call in calls],
                    }
                ],
                'traceTransfers': trace_transfers,
                'validation': False,
            },
            'latest',
        ]
        log_args = {LogArgs.chain_id: self.chain_id, LogArgs.web3_url: self.uri}
        logger.debug(f'Simulating {len(calls)} calls on chain %({LogArgs.chain_id})s', log_args, extra=log_args)
        try:
            response, gas_price = await asyncio.gather(
                self.w3.provider.make_request(SIMULATE_METHOD, payload),
                self.get_gas_price(),
            )
        except TRANSPORT_ERRORS as e:
            raise SimulationTransportError(f'{SIMULATE_METHOD} request failed: {e!r}') from e

        if response.get('error'):
            error = response['error']
            message = error.get('message', error) if isinstance(error, dict) else error
            raise SimulationTransportError(f'{SIMULATE_METHOD} returned an error: {message}')
        result = response.get('result')
        if not isinstance(result, list) or not result:
            raise SimulationTransportError(f'Invalid {SIMULATE_METHOD} response: {response}')
        return self._parse_block(result[0], gas_price)

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    @staticmethod
    def _encode_call(call: TxData, account: str) -> dict:
        encoded = {
            'from': account,
            'to': call.to,
            'data': call.data,
        }
        if call.value:
            encoded['value'] = Web3.to_hex(call.value)
        return encoded

    @staticmethod
    def _encode_overrides(state_overrides: Dict[str, Dict[str, Any]]) -> dict:
        return {
            address: {
                key: Web3.to_hex(value) if isinstance(value, int) else value
                for key, value in override.items()
            }
            for address, override in state_overrides.items()
        }

    @classmethod
    def _parse_block(cls, block: dict, gas_price: Optional[int]) -> SimulatedBlock:
        try:
            return SimulatedBlock(
                number=_to_int(block.get('number')),
                gas_price=gas_price,
                results=[cls._parse_call(call) for call in block['calls']],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SimulationTransportError(f'Invalid {SIMULATE_METHOD} block: {e!r}') from e

    @staticmethod
    def _parse_call(call: dict) -> CallResult:
        error = call.get('error')
        return CallResult(
            success=call.get('status') == '0x1',
            return_data=call.get('returnData') or '0x',
            gas_used=_to_int(call.get('gasUsed')),
            logs=[
                LogEntry(
                    address=log['address'],
                    topics=log.get('topics') or [],
                    data=log.get('data') or '0x',
                )
                for log in call.get('logs') or []
            ],
            error=error.get('message') if isinstance(error, dict) else error,
        )
