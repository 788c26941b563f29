import pytest

from meta_quote_engine.models.options_models import QuoteSelectionStrategy
from meta_quote_engine.models.quote_models import FailedQuote
from meta_quote_engine.services.strategies import select_best
from meta_quote_engine.tests.fixtures.providers_clients import make_quote


def test_quoted_price_picks_max_output():
    quotes = [
        make_quote('a', output_amount=10**30, network_fee=5),
        make_quote('b', output_amount=10**30 + 1, network_fee=500),
        FailedQuote(provider='c', error='no route'),
    ]
    assert select_best(quotes, QuoteSelectionStrategy.QUOTED_PRICE).provider == 'b'


def test_quoted_price_tie_breaks_on_fee_then_provider():
    quotes = [
        make_quote('c', output_amount=100, network_fee=7),
        make_quote('b', output_amount=100, network_fee=5),
        make_quote('a', output_amount=100, network_fee=5),
    ]
    assert select_best(quotes, 'quotedPrice').provider == 'a'


def test_quoted_gas_picks_min_fee():
    quotes = [
        make_quote('a', output_amount=100, network_fee=50),
        make_quote('b', output_amount=90, network_fee=40),
    ]
    assert select_best(quotes, 'quotedGas').provider == 'b'


def test_quoted_gas_tie_breaks_on_output_then_provider():
    quotes = [
        make_quote('z', output_amount=90, network_fee=40),
        make_quote('y', output_amount=95, network_fee=40),
        make_quote('x', output_amount=95, network_fee=40),
    ]
    assert select_best(quotes, 'quotedGas').provider == 'x'


def test_priority_takes_first_success_in_order():
    quotes = [
        FailedQuote(provider='a', error='down'),
        make_quote('b', output_amount=1),
        make_quote('c', output_amount=1000),
    ]
    assert select_best(quotes, 'priority').provider == 'b'


def test_fastest_counts_failures_too():
    quotes = [
        make_quote('slow', latency_ms=300),
        FailedQuote(provider='quick', error='rejected', latency_ms=20),
    ]
    best = select_best(quotes, 'fastest')
    assert best.provider == 'quick'
    assert best.success is False


def test_custom_callable_strategy():
    quotes = [make_quote('a', output_amount=1), make_quote('b', output_amount=2)]
    assert select_best(quotes, lambda qs: qs[-1]).provider == 'b'


@pytest.mark.parametrize('strategy', ['quotedPrice', 'quotedGas', 'priority', 'fastest'])
def test_empty_input_returns_none(strategy):
    assert select_best([], strategy) is None


def test_no_successful_quote_returns_none():
    quotes = [FailedQuote(provider='a', error='x'), FailedQuote(provider='b', error='y')]
    assert select_best(quotes, 'quotedPrice') is None
    assert select_best(quotes, 'quotedGas') is None


def test_unknown_strategy_raises():
    with pytest.raises(ValueError):
        select_best([make_quote()], 'cheapest')
