from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from meta_quote_engine.utils.common import address_to_lower


class TokenPricing(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: address_to_lower
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    logo_uri: Optional[str] = None
    usd_price: Optional[float] = None  # USD price of one whole token


class QuotePricing(BaseModel):
    """Token metadata a provider sent along with its quote."""
    model_config = ConfigDict(frozen=True)

    input_token: Optional[TokenPricing] = None
    output_token: Optional[TokenPricing] = None


class PricingSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    sources: List[str] = []  # providers that contributed pricing
    input_token: Optional[TokenPricing] = None  # usd_price averaged over sources
    output_token: Optional[TokenPricing] = None
