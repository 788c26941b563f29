from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator

from meta_quote_engine.models.pricing_models import QuotePricing
from meta_quote_engine.models.simulation_models import (
    QuotePerformance,
    SimulationFailure,
    SimulationSuccess,
    TxData,
)
from meta_quote_engine.utils.common import address_to_lower


class SwapMode(str, Enum):
    EXACT_IN = 'exactIn'
    # Exact input, the caller intends to re-request the quote periodically.
    EXACT_IN_WITH_REFRESH = 'exactInWithRefresh'
    TARGET_OUT = 'targetOut'


class AggregatorFeature(str, Enum):
    EXACT_IN = 'exactIn'
    TARGET_OUT = 'targetOut'
    INTEGRATOR_FEES = 'integratorFees'
    INTEGRATOR_SURPLUS = 'integratorSurplus'


MODE_FEATURES = {
    SwapMode.EXACT_IN: AggregatorFeature.EXACT_IN,
    SwapMode.EXACT_IN_WITH_REFRESH: AggregatorFeature.EXACT_IN,
    SwapMode.TARGET_OUT: AggregatorFeature.TARGET_OUT,
}


class SwapParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain_id: int  # EIP-155 chain id
    input_token: address_to_lower  # token being sold
    output_token: address_to_lower  # token being bought
    mode: SwapMode = SwapMode.EXACT_IN
    input_amount: Optional[NonNegativeInt] = None  # base units, exact-input modes
    output_amount: Optional[NonNegativeInt] = None  # base units, targetOut
    slippage_bps: int = Field(ge=0, le=10_000)
    swapper_account: address_to_lower  # account that will submit the swap
    deadline: Optional[int] = None  # unix timestamp after which the swap must not execute

    @model_validator(mode='after')
    def check_amount_for_mode(self) -> 'SwapParams':
        if self.mode == SwapMode.TARGET_OUT:
            if self.output_amount is None:
                raise ValueError('output_amount is required for targetOut swaps')
        elif self.input_amount is None:
            raise ValueError(f'input_amount is required for {self.mode.value} swaps')
        return self

    def required_features(self) -> List[AggregatorFeature]:
        return [MODE_FEATURES[self.mode]]


class Approval(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: address_to_lower  # token that has to be approved
    spender: address_to_lower  # contract that will spend it


class SuccessfulQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    provider: str  # provider name. Set in provider class
    input_amount: NonNegativeInt  # amount of input token sold, base units
    output_amount: NonNegativeInt  # amount of output token bought, base units
    network_fee: NonNegativeInt  # estimated network fee in wei
    latency_ms: float = Field(0, ge=0)  # dispatch to resolution
    tx_data: TxData
    approval: Optional[Approval] = None
    pricing: Optional[QuotePricing] = None  # token metadata and USD prices, if the provider sends them
    details: Dict[str, Any] = {}  # raw provider payload
    activated_features: List[AggregatorFeature] = []
    simulation: Optional[SimulationSuccess] = None  # set once the quote has been replayed

    @property
    def performance(self) -> Optional[QuotePerformance]:
        """None until the quote has been simulated."""
        if self.simulation is None:
            return None
        delta = self.simulation.price_delta_bps
        return QuotePerformance(
            latency_ms=self.latency_ms,
            gas_used=self.simulation.gas_used or 0,
            output_amount=self.simulation.output_amount,
            price_delta_bps=delta,
            accuracy_bps=abs(delta) if delta is not None else None,
        )


class FailedQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    provider: str
    error: str  # human readable reason
    error_type: Optional[str] = None  # class name of the underlying error
    latency_ms: Optional[float] = Field(None, ge=0)
    details: Dict[str, Any] = {}
    simulation: Optional[SimulationFailure] = None  # set when validation rejected the quote


Quote = Annotated[Union[SuccessfulQuote, FailedQuote], Field(discriminator='success')]
