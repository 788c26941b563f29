from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from meta_quote_engine.models.simulation_models import SimulatedBlock, TxData


class SimulationClient(ABC):
    """
    Read-only call batch executor bound to one chain.

    Implementations replay calls on top of the latest block without committing anything:
    no state is mutated and the account nonce is not consumed, so the same batch can be
    simulated any number of times. They are owned by the caller and may be pooled; the
    engine holds no state across calls.
    """
    chain_id: int

    @abstractmethod
    async def simulate_calls(
        self,
        calls: List[TxData],
        account: str,
        state_overrides: Optional[Dict[str, Dict[str, Any]]] = None,
        trace_transfers: bool = True,
    ) -> SimulatedBlock:
        """
        Execute calls in order from account and return one CallResult per call.

        Args:
            calls: transactions to replay, in execution order
            account: sender of every call
            state_overrides: per address overrides applied before the batch, e.g.
                {'0xabc...': {'balance': 10 ** 22}}
            trace_transfers: report native token transfers as ERC-20 Transfer logs

        Raises:
            SimulationTransportError: the node could not be reached or answered garbage.
                Reverted calls are not an error here, they come back with success=False.
        """
