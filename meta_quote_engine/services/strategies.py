from typing import Callable, List, Optional, Sequence, Union

from meta_quote_engine.models.options_models import QuoteSelectionStrategy
from meta_quote_engine.models.quote_models import Quote, SuccessfulQuote

QuoteSelectionFn = Callable[[Sequence[Quote]], Optional[Quote]]
Strategy = Union[QuoteSelectionStrategy, str, QuoteSelectionFn]


def _successful(quotes: Sequence[Quote]) -> List[SuccessfulQuote]:
    return [quote for quote in quotes if quote.success]


def fastest(quotes: Sequence[Quote]) -> Optional[Quote]:
    """Quote that resolved first, successful or not. Quotes without latency never win."""
    timed = [quote for quote in quotes if quote.latency_ms is not None]
    if not timed:
        return None
    return min(timed, key=lambda quote: quote.latency_ms)


def quoted_gas(quotes: Sequence[Quote]) -> Optional[SuccessfulQuote]:
    candidates = _successful(quotes)
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda quote: (quote.network_fee, -quote.output_amount, quote.provider),
    )


def quoted_price(quotes: Sequence[Quote]) -> Optional[SuccessfulQuote]:
    candidates = _successful(quotes)
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda quote: (-quote.output_amount, quote.network_fee, quote.provider),
    )


def priority(quotes: Sequence[Quote]) -> Optional[SuccessfulQuote]:
    """First successful quote in provider registration order."""
    return next(iter(_successful(quotes)), None)


STRATEGIES = {
    QuoteSelectionStrategy.FASTEST: fastest,
    QuoteSelectionStrategy.QUOTED_GAS: quoted_gas,
    QuoteSelectionStrategy.QUOTED_PRICE: quoted_price,
    QuoteSelectionStrategy.PRIORITY: priority,
}


def resolve_strategy(strategy: Strategy) -> QuoteSelectionFn:
    """
    Raises:
        ValueError: strategy is neither a known name nor a callable
    """
    if callable(strategy):
        return strategy
    try:
        return STRATEGIES[QuoteSelectionStrategy(strategy)]
    except ValueError:
        raise ValueError(
            f'Unknown quote selection strategy {strategy!r}. '
            f'Use one of {[s.value for s in QuoteSelectionStrategy]} or a callable'
        ) from None


def select_best(quotes: Sequence[Quote], strategy: Strategy) -> Optional[Quote]:
    """
    Pick one quote out of quotes. Amounts are compared as exact integers.

    Returns None for empty input or when no quote qualifies.
    """
    select = resolve_strategy(strategy)
    if not quotes:
        return None
    return select(quotes)
