import asyncio
from time import perf_counter
from typing import Dict, List, Mapping

from eth_abi import decode, encode
from web3 import Web3

from meta_quote_engine.clients.blockchain.simulation_client import SimulationClient
from meta_quote_engine.config import settings
from meta_quote_engine.models.options_models import MissingSimulationClientPolicy
from meta_quote_engine.models.quote_models import (
    FailedQuote,
    Quote,
    SuccessfulQuote,
    SwapParams,
)
from meta_quote_engine.models.simulation_models import (
    CallResult,
    LogEntry,
    SimulationFailure,
    SimulationSuccess,
    TransferData,
    TxData,
)
from meta_quote_engine.utils.common import is_native_token
from meta_quote_engine.utils.errors import (
    SimulationError,
    SimulationRevertError,
    SimulationTransportError,
    SimulationUnavailableError,
)
from meta_quote_engine.utils.logger import LogArgs, capture_exception, get_logger

logger = get_logger(__name__)

# keccak256('Transfer(address,address,uint256)')
TRANSFER_TOPIC = '0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef'
# approve(address,uint256)
APPROVE_SELECTOR = '0x095ea7b3'


def build_approve_call(token: str, spender: str, amount: int) -> TxData:
    calldata = encode(['address', 'uint256'], [Web3.to_checksum_address(spender), amount])
    return TxData(to=token, data=APPROVE_SELECTOR + calldata.hex())


def _topic_to_address(topic: str) -> str:
    return decode(['address'], Web3.to_bytes(hexstr=topic))[0].lower()


def extract_transfers(logs: List[LogEntry]) -> List[TransferData]:
    """
    Pick ERC-20 Transfer events out of call logs.

    With traceTransfers enabled native token movements show up here too, emitted by
    the 0xeeee...eeee pseudo token.
    """
    transfers = []
    for index, log in enumerate(logs):
        if len(log.topics) != 3 or log.topics[0].lower() != TRANSFER_TOPIC:
            continue
        transfers.append(
            TransferData(
                index=index,
                token=log.address,
                sender=_topic_to_address(log.topics[1]),
                recipient=_topic_to_address(log.topics[2]),
                value=int(log.data, 16) if log.data not in ('', '0x') else 0,
            )
        )
    return transfers


def net_inflow(transfers: List[TransferData], token: str, account: str) -> int:
    token = settings.NATIVE_TOKEN_ADDRESS if is_native_token(token) else token.lower()
    account = account.lower()
    inflow = 0
    for transfer in transfers:
        if transfer.token != token:
            continue
        if transfer.recipient == account:
            inflow += transfer.value
        if transfer.sender == account:
            inflow -= transfer.value
    return inflow


async def simulate_quote(
    client: SimulationClient,
    params: SwapParams,
    quote: Quote,
) -> SimulationSuccess:
    """
    Replay a quote's transaction on current chain state without committing anything.

    For an ERC-20 input the batch is approve(spender, input_amount) followed by the swap,
    otherwise the swap alone. The swapper gets enough native balance to pay for gas.

    Raises:
        SimulationRevertError: a call of the batch reverted
        SimulationTransportError: the client failed to run the batch at all
        SimulationError: the quote cannot be simulated or the swap yields nothing
    """
    if not quote.success:
        raise SimulationError(f'Cannot simulate a failed quote from {quote.provider}')

    calls = []
    if not is_native_token(params.input_token):
        token = quote.approval.token if quote.approval else params.input_token
        spender = quote.approval.spender if quote.approval else quote.tx_data.to
        calls.append(build_approve_call(token, spender, quote.input_amount))
    calls.append(quote.tx_data)

    start = perf_counter()
    block = await client.simulate_calls(
        calls,
        account=params.swapper_account,
        state_overrides={
            params.swapper_account: {'balance': settings.SIMULATION_NATIVE_BALANCE},
        },
    )
    latency_ms = (perf_counter() - start) * 1000

    if len(block.results) != len(calls):
        raise SimulationTransportError(
            f'Expected {len(calls)} call results, got {len(block.results)}',
            block.number,
        )
    failures = [
        (call, result) for call, result in zip(calls, block.results) if not result.success
    ]
    if failures:
        raise SimulationRevertError(failures, block.number)

    swap_result: CallResult = block.results[-1]
    transfers = extract_transfers(swap_result.logs)
    output_amount = net_inflow(transfers, params.output_token, params.swapper_account)
    if output_amount <= 0:
        raise SimulationError(
            f'Swap produced no {params.output_token} for {params.swapper_account}',
            block.number,
        )

    return SimulationSuccess(
        output_amount=output_amount,
        quoted_output_amount=quote.output_amount,
        call_results=block.results,
        gas_used=swap_result.gas_used,
        gas_price=block.gas_price,
        latency_ms=latency_ms,
        block_number=block.number,
        transfers=transfers,
    )


def _rejected(quote: SuccessfulQuote, exc: SimulationError) -> FailedQuote:
    error = exc.reason if isinstance(exc, SimulationRevertError) else exc.message
    return FailedQuote(
        provider=quote.provider,
        error=error,
        error_type=type(exc).__name__,
        latency_ms=quote.latency_ms,
        details=quote.details,
        simulation=SimulationFailure(
            error=exc.message,
            error_type=type(exc).__name__,
            block_number=exc.block_number,
        ),
    )


class SimulationValidator:
    """Replays successful quotes and reclassifies them by what actually happened on chain."""

    def __init__(
        self,
        simulation_clients: Mapping[int, SimulationClient],
        missing_client_policy: MissingSimulationClientPolicy = MissingSimulationClientPolicy.PASS_THROUGH,
        concurrency: int = settings.SIMULATION_CONCURRENCY,
    ):
        self.simulation_clients = simulation_clients
        self.missing_client_policy = missing_client_policy
        self.concurrency = concurrency

    def _unvalidated(self, quote: SuccessfulQuote, exc: SimulationError) -> Quote:
        if self.missing_client_policy == MissingSimulationClientPolicy.REJECT:
            return _rejected(quote, exc)
        return quote

    async def simulate_quotes(self, params: SwapParams, quotes: List[Quote]) -> List[Quote]:
        """Simulate every successful quote, keeping the order of quotes."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(quote: Quote) -> Quote:
            if not quote.success:
                return quote
            async with semaphore:
                return await self.validate_quote(params, quote)

        return list(await asyncio.gather(*(bounded(quote) for quote in quotes)))

    async def validate_quote(self, params: SwapParams, quote: SuccessfulQuote) -> Quote:
        log_args = {
            LogArgs.chain_id: params.chain_id,
            LogArgs.aggregation_provider: quote.provider,
        }
        client = self.simulation_clients.get(params.chain_id)
        if client is None:
            logger.debug(
                'No simulation client for chain %(chain_id)s, quote from %(aggregation_provider)s '
                f'handled with {self.missing_client_policy.value} policy',
                log_args,
                extra=log_args,
            )
            return self._unvalidated(
                quote, SimulationUnavailableError(f'No simulation client for chain {params.chain_id}')
            )

        try:
            simulation = await simulate_quote(client, params, quote)
        except SimulationTransportError as e:
            logger.warning(
                'Simulation client failed for %(aggregation_provider)s on chain %(chain_id)s',
                log_args,
                extra={**log_args, LogArgs.ex: e.message},
            )
            return self._unvalidated(quote, e)
        except SimulationError as e:
            logger.info(
                'Quote from %(aggregation_provider)s failed simulation',
                log_args,
                extra={**log_args, LogArgs.ex: e.message},
            )
            return _rejected(quote, e)
        except Exception as e:
            # Broken client or undecodable logs, not an on-chain outcome.
            capture_exception()
            logger.exception(
                'Simulation of %(aggregation_provider)s quote crashed on chain %(chain_id)s',
                log_args,
                extra={**log_args, LogArgs.ex: repr(e)},
            )
            return self._unvalidated(quote, SimulationTransportError(repr(e)))

        update: Dict = {'output_amount': simulation.output_amount, 'simulation': simulation}
        if simulation.network_fee is not None:
            update['network_fee'] = simulation.network_fee
        return quote.model_copy(update=update)

