import math
from decimal import Decimal
from typing import Iterable, List, Optional

from meta_quote_engine.models.pricing_models import PricingSummary, TokenPricing
from meta_quote_engine.models.quote_models import Quote


def average(values: Iterable[float]) -> Optional[float]:
    finite = [value for value in values if math.isfinite(value)]
    if not finite:
        return None
    return sum(finite) / len(finite)


def amount_to_number(amount: int, decimals: Optional[int]) -> Optional[float]:
    """
    Base units to whole tokens.

    Returns None when decimals are unknown or the amount rounds to nothing,
    so callers never divide by zero.
    """
    if decimals is None:
        return None
    value = float(Decimal(amount) / Decimal(10**decimals))
    if not math.isfinite(value) or value == 0:
        return None
    return value


def compute_usd_value(
    amount: int, decimals: Optional[int], usd_price: Optional[float]
) -> Optional[float]:
    if usd_price is None:
        return None
    normalized = amount_to_number(amount, decimals)
    if normalized is None:
        return None
    return usd_price * normalized


def compute_usd_price_from_value(
    amount: int, decimals: Optional[int], usd_value: Optional[float]
) -> Optional[float]:
    if usd_value is None:
        return None
    normalized = amount_to_number(amount, decimals)
    if normalized is None:
        return None
    return usd_value / normalized


def _merge_token(
    base: Optional[TokenPricing], new: Optional[TokenPricing]
) -> Optional[TokenPricing]:
    if new is None:
        return base
    if base is None:
        return new.model_copy(update={'usd_price': None})
    # Providers disagreeing on the token itself keep the first one.
    if base.address != new.address:
        return base
    return base.model_copy(
        update={
            'symbol': base.symbol or new.symbol,
            'decimals': base.decimals if base.decimals is not None else new.decimals,
            'logo_uri': base.logo_uri or new.logo_uri,
        }
    )


def _collect_price(
    prices: List[float], merged: Optional[TokenPricing], token: Optional[TokenPricing]
) -> None:
    # A price quoted for some other token would skew the average.
    if token is None or token.usd_price is None or merged is None:
        return
    if token.address == merged.address:
        prices.append(token.usd_price)


def _summary_token(token: Optional[TokenPricing], prices: List[float]) -> Optional[TokenPricing]:
    if token is None:
        return None
    return token.model_copy(update={'usd_price': average(prices)})


def get_pricing(quotes: Iterable[Quote]) -> PricingSummary:
    """
    Combine the pricing metadata of successful quotes.

    Token metadata is filled in from the first provider that knows it, USD prices
    are averaged over every provider that sent one. Failed quotes and quotes without
    pricing are ignored, and so are prices for a token other than the first one seen.
    """
    sources: List[str] = []
    input_token = output_token = None
    input_prices: List[float] = []
    output_prices: List[float] = []
    for quote in quotes:
        if not quote.success or quote.pricing is None:
            continue
        if quote.provider not in sources:
            sources.append(quote.provider)
        pricing = quote.pricing
        input_token = _merge_token(input_token, pricing.input_token)
        output_token = _merge_token(output_token, pricing.output_token)
        _collect_price(input_prices, input_token, pricing.input_token)
        _collect_price(output_prices, output_token, pricing.output_token)

    return PricingSummary(
        sources=sources,
        input_token=_summary_token(input_token, input_prices),
        output_token=_summary_token(output_token, output_prices),
    )
