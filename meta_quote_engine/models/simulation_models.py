from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from meta_quote_engine.utils.common import address_to_lower


class TxData(BaseModel):
    model_config = ConfigDict(frozen=True)

    to: address_to_lower  # contract that receives the call
    data: str = '0x'  # calldata
    value: NonNegativeInt = 0  # native token amount in wei sent with the call


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: address_to_lower
    topics: List[str] = []
    data: str = '0x'


class CallResult(BaseModel):
    """Outcome of one call inside a simulated block."""
    model_config = ConfigDict(frozen=True)

    success: bool
    return_data: str = '0x'
    gas_used: Optional[NonNegativeInt] = None
    logs: List[LogEntry] = []
    error: Optional[str] = None


class SimulatedBlock(BaseModel):
    """What a SimulationClient returns for one batch of calls."""
    model_config = ConfigDict(frozen=True)

    number: Optional[int] = None
    gas_price: Optional[NonNegativeInt] = None  # current gas price in wei, if known
    results: List[CallResult]


class TransferData(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int  # position of the Transfer event in the call logs
    token: address_to_lower
    sender: address_to_lower
    recipient: address_to_lower
    value: NonNegativeInt


class SimulationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    output_amount: NonNegativeInt  # output token received by the swapper, from traced transfers
    quoted_output_amount: NonNegativeInt  # what the provider claimed
    call_results: List[CallResult]
    gas_used: Optional[NonNegativeInt] = None  # gas used by the swap call
    gas_price: Optional[NonNegativeInt] = None  # wei, at the simulated block
    latency_ms: float = Field(0, ge=0)
    block_number: Optional[int] = None
    transfers: List[TransferData] = []

    @property
    def network_fee(self) -> Optional[int]:
        if self.gas_used is None or self.gas_price is None:
            return None
        return self.gas_used * self.gas_price

    @property
    def price_delta_bps(self) -> Optional[float]:
        """Executed versus quoted output, in basis points. None for a zero quote."""
        if self.quoted_output_amount == 0:
            return None
        delta = self.output_amount - self.quoted_output_amount
        return delta * 10_000 / self.quoted_output_amount


class QuotePerformance(BaseModel):
    """How a simulated quote behaved, for ranking providers."""
    model_config = ConfigDict(frozen=True)

    latency_ms: float  # provider response time
    gas_used: NonNegativeInt  # 0 when the client did not report it
    output_amount: NonNegativeInt  # simulated
    price_delta_bps: Optional[float] = None  # simulated versus quoted output, signed
    accuracy_bps: Optional[float] = None  # abs(price_delta_bps)


class SimulationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: str
    error_type: str
    block_number: Optional[int] = None


SimulationResult = Annotated[Union[SimulationSuccess, SimulationFailure], Field(discriminator='success')]
