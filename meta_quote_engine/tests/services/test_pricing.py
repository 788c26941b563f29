import math

import pytest

from meta_quote_engine.models.pricing_models import QuotePricing, TokenPricing
from meta_quote_engine.models.quote_models import FailedQuote
from meta_quote_engine.services.pricing import (
    amount_to_number,
    average,
    compute_usd_price_from_value,
    compute_usd_value,
    get_pricing,
)
from meta_quote_engine.tests.fixtures.providers_clients import USDC, WETH, make_quote


def priced_quote(provider, input_token=None, output_token=None):
    return make_quote(provider).model_copy(
        update={'pricing': QuotePricing(input_token=input_token, output_token=output_token)}
    )


def test_average_skips_non_finite_values():
    assert average([1.0, 3.0, math.inf, math.nan]) == 2.0
    assert average([]) is None


@pytest.mark.parametrize(
    'amount, decimals, expected',
    [(1_500_000, 6, 1.5), (10**18, 18, 1.0), (0, 6, None), (10, None, None)],
)
def test_amount_to_number(amount, decimals, expected):
    assert amount_to_number(amount, decimals) == expected


def test_usd_conversions():
    assert compute_usd_value(2_000_000, 6, 0.999) == pytest.approx(1.998)
    assert compute_usd_value(2_000_000, 6, None) is None
    assert compute_usd_price_from_value(5 * 10**17, 18, 1_500.0) == pytest.approx(3_000.0)
    assert compute_usd_price_from_value(0, 18, 1_500.0) is None


def test_pricing_summary_merges_metadata_and_averages_prices():
    quotes = [
        priced_quote(
            'a',
            input_token=TokenPricing(address=USDC, decimals=6, usd_price=1.0),
            output_token=TokenPricing(address=WETH, usd_price=3_000.0),
        ),
        FailedQuote(provider='down', error='timeout'),
        make_quote('unpriced'),
        priced_quote(
            'b',
            input_token=TokenPricing(address=USDC, symbol='USDC', usd_price=0.98),
            output_token=TokenPricing(address=WETH, symbol='WETH', decimals=18, usd_price=3_100.0),
        ),
    ]

    summary = get_pricing(quotes)

    assert summary.sources == ['a', 'b']
    assert summary.input_token.symbol == 'USDC'
    assert summary.input_token.decimals == 6
    assert summary.input_token.usd_price == pytest.approx(0.99)
    assert summary.output_token.symbol == 'WETH'
    assert summary.output_token.decimals == 18
    assert summary.output_token.usd_price == pytest.approx(3_050.0)


def test_pricing_summary_keeps_first_token_on_address_conflict():
    quotes = [
        priced_quote('a', output_token=TokenPricing(address=WETH, symbol='WETH')),
        priced_quote('b', output_token=TokenPricing(address=USDC, symbol='USDC', usd_price=1.0)),
    ]

    summary = get_pricing(quotes)

    assert summary.output_token.address == WETH
    assert summary.output_token.symbol == 'WETH'
    assert summary.output_token.usd_price is None
    assert summary.input_token is None


def test_pricing_summary_without_prices():
    summary = get_pricing([make_quote('a'), FailedQuote(provider='b', error='x')])

    assert summary.sources == []
    assert summary.input_token is None
    assert summary.output_token is None
