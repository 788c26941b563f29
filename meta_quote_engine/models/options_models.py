from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from meta_quote_engine.config import settings
from meta_quote_engine.models.quote_models import AggregatorFeature
from meta_quote_engine.utils.common import address_to_lower


class QuoteSelectionStrategy(str, Enum):
    FASTEST = 'fastest'
    QUOTED_GAS = 'quotedGas'
    QUOTED_PRICE = 'quotedPrice'
    PRIORITY = 'priority'


class MissingSimulationClientPolicy(str, Enum):
    # Keep the provider's quote as is, unvalidated.
    PASS_THROUGH = 'pass_through'
    # Turn the quote into a failure.
    REJECT = 'reject'


class RetryPolicy(BaseModel):
    """
    Bounded exponential backoff for a single provider call.

    Attempts = num_retries + 1. The delay before attempt k (k >= 2) is
    initial_delay_ms * backoff_multiplier ** (k - 2).
    """
    model_config = ConfigDict(frozen=True)

    num_retries: int = Field(settings.NUM_RETRIES, ge=0, le=settings.MAX_RETRIES)
    initial_delay_ms: float = Field(
        settings.INITIAL_RETRY_DELAY_MS, ge=0, le=settings.MAX_INITIAL_RETRY_DELAY_MS
    )
    backoff_multiplier: float = Field(settings.BACKOFF_MULTIPLIER, ge=1)

    @property
    def attempts(self) -> int:
        return self.num_retries + 1

    def delay_before_attempt_ms(self, attempt: int) -> float:
        if attempt < 2:
            return 0
        return self.initial_delay_ms * self.backoff_multiplier ** (attempt - 2)

    @property
    def scheduled_delays_ms(self) -> List[float]:
        return [self.delay_before_attempt_ms(k) for k in range(2, self.attempts + 1)]


class SwapOptions(BaseModel):
    """Integrator fee settings forwarded to every provider call."""
    model_config = ConfigDict(frozen=True)

    integrator_fee_address: Optional[address_to_lower] = None
    integrator_fee_bps: int = Field(0, ge=0, le=10_000)
    integrator_surplus_bps: int = Field(0, ge=0, le=10_000)
    # Defaults to integrator_fee_address when not set.
    integrator_surplus_address: Optional[address_to_lower] = None

    @model_validator(mode='after')
    def check_fee_address(self) -> 'SwapOptions':
        has_bps = self.integrator_fee_bps > 0 or self.integrator_surplus_bps > 0
        if has_bps and not self.integrator_fee_address:
            raise ValueError(
                'Swap fee or surplus bps provided without an integrator fee address. '
                'Set integrator_fee_address.'
            )
        if self.integrator_fee_address and not has_bps:
            raise ValueError(
                'Integrator fee address provided without swap fee or surplus bps. '
                'Set integrator_fee_bps or integrator_surplus_bps.'
            )
        return self

    @property
    def surplus_address(self) -> Optional[str]:
        return self.integrator_surplus_address or self.integrator_fee_address

    def requested_features(self) -> List[AggregatorFeature]:
        features = []
        if self.integrator_fee_bps > 0:
            features.append(AggregatorFeature.INTEGRATOR_FEES)
        if self.integrator_surplus_bps > 0:
            features.append(AggregatorFeature.INTEGRATOR_SURPLUS)
        return features
