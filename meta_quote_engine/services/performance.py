from typing import Iterable, List

from meta_quote_engine.models.quote_models import SuccessfulQuote
from meta_quote_engine.models.simulation_models import QuotePerformance

PERFORMANCE_METRICS = tuple(QuotePerformance.model_fields)


def sort_quotes_by_performance(
    quotes: Iterable[SuccessfulQuote],
    metric: str,
    ascending: bool = True,
) -> List[SuccessfulQuote]:
    """
    Order simulated quotes by one QuotePerformance metric.

    Quotes without a value for metric (never simulated, or no price delta)
    go last in either direction. Equal values keep their input order.

    Raises:
        ValueError: metric is not a QuotePerformance field
    """
    if metric not in PERFORMANCE_METRICS:
        raise ValueError(f'Unknown performance metric {metric!r}, expected one of {PERFORMANCE_METRICS}')

    measured = []
    unmeasured = []
    for quote in quotes:
        performance = quote.performance if quote.success else None
        value = getattr(performance, metric) if performance is not None else None
        if value is None:
            unmeasured.append(quote)
        else:
            measured.append((value, quote))

    measured.sort(key=lambda item: item[0], reverse=not ascending)
    return [quote for _, quote in measured] + unmeasured
