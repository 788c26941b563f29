import asyncio
from time import perf_counter

import pytest

from meta_quote_engine.config.aggregator import create_config
from meta_quote_engine.models.quote_models import AggregatorFeature
from meta_quote_engine.services import orchestrator as orchestrator_module
from meta_quote_engine.services.orchestrator import QuoteOrchestrator
from meta_quote_engine.tests.fixtures.providers_clients import (
    FEE_ADDRESS,
    StubProvider,
    drain_abandoned_calls,
)
from meta_quote_engine.utils.errors import ConfigurationError, NotConfiguredError

NO_RETRY = {'num_retries': 0, 'initial_delay_ms': 0}


def orchestrator_for(*providers, **options) -> QuoteOrchestrator:
    options.setdefault('retry_policy', NO_RETRY)
    return QuoteOrchestrator(create_config(providers, options))


def test_orchestrator_requires_config():
    with pytest.raises(NotConfiguredError):
        QuoteOrchestrator(None)
    with pytest.raises(ConfigurationError):
        QuoteOrchestrator({'providers': []})


@pytest.mark.asyncio()
async def test_fetch_all_one_quote_per_provider_in_order(swap_params):
    orchestrator = orchestrator_for(
        StubProvider('slow', output_amount=3, delay=0.05),
        StubProvider('failing', failures=10),
        StubProvider('fast', output_amount=1),
    )

    quotes = await orchestrator.fetch_all(swap_params)

    assert [quote.provider for quote in quotes] == ['slow', 'failing', 'fast']
    assert [quote.success for quote in quotes] == [True, False, True]
    assert quotes[0].latency_ms >= 45
    assert quotes[1].error_type == 'AggregationProviderError'


@pytest.mark.asyncio()
async def test_fetch_all_times_out_slow_provider_without_blocking_others(swap_params):
    slow = StubProvider('slow', delay=5)
    orchestrator = orchestrator_for(slow, StubProvider('fast'), deadline_ms=50)

    start = perf_counter()
    quotes = await orchestrator.fetch_all(swap_params)
    elapsed = perf_counter() - start

    assert elapsed < 1
    timed_out, fast = quotes
    assert timed_out.success is False
    assert timed_out.error_type == 'ProviderTimeoutError'
    assert timed_out.details['deadline_ms'] == 50
    assert fast.success is True
    # abandoned, not cancelled
    assert slow.cancelled is False
    assert orchestrator_module._abandoned_tasks
    await drain_abandoned_calls()


@pytest.mark.asyncio()
async def test_provider_timeout_overrides_config_deadline(swap_params):
    orchestrator = orchestrator_for(
        StubProvider('patient', delay=0.1, timeout_ms=1_000),
        StubProvider('strict', delay=0.1, timeout_ms=20),
        deadline_ms=5_000,
    )

    patient, strict = await orchestrator.fetch_all(swap_params)

    assert patient.success is True
    assert strict.error_type == 'ProviderTimeoutError'
    await drain_abandoned_calls()


@pytest.mark.asyncio()
async def test_adapter_bug_becomes_failed_quote(swap_params, apm_client):
    orchestrator = orchestrator_for(
        StubProvider('buggy', error=ZeroDivisionError('division by zero')),
        StubProvider('healthy'),
    )

    buggy, healthy = await orchestrator.fetch_all(swap_params)

    assert buggy.success is False
    assert buggy.error_type == 'UnexpectedProviderError'
    assert 'ZeroDivisionError' in buggy.error
    assert healthy.success is True
    apm_client.capture_exception.assert_called()


@pytest.mark.asyncio()
async def test_retries_follow_config_policy(swap_params):
    flaky = StubProvider('flaky', failures=2)
    orchestrator = orchestrator_for(
        flaky, retry_policy={'num_retries': 2, 'initial_delay_ms': 1}
    )

    [quote] = await orchestrator.fetch_all(swap_params)

    assert quote.success is True
    assert flaky.calls == 3


@pytest.mark.asyncio()
async def test_unsupported_mode_fails_without_calling_provider(target_out_params):
    exact_in_only = StubProvider('exact_in_only')
    both = StubProvider(
        'both', features=[AggregatorFeature.EXACT_IN, AggregatorFeature.TARGET_OUT]
    )
    orchestrator = orchestrator_for(exact_in_only, both)

    unsupported, supported = await orchestrator.fetch_all(target_out_params)

    assert unsupported.error_type == 'UnsupportedFeatureError'
    assert exact_in_only.calls == 0
    assert supported.success is True


@pytest.mark.asyncio()
async def test_activated_features_annotated(swap_params):
    with_fees = StubProvider(
        'with_fees', features=[AggregatorFeature.EXACT_IN, AggregatorFeature.INTEGRATOR_FEES]
    )
    negotiated = StubProvider('negotiated', negotiated_features=[AggregatorFeature.INTEGRATOR_FEES])
    plain = StubProvider('plain')
    orchestrator = orchestrator_for(
        with_fees, negotiated, plain,
        integrator_fee_address=FEE_ADDRESS,
        integrator_fee_bps=30,
    )

    quotes = await orchestrator.fetch_all(swap_params)

    assert [quote.activated_features for quote in quotes] == [
        [AggregatorFeature.INTEGRATOR_FEES],
        [AggregatorFeature.INTEGRATOR_FEES],
        [],
    ]
    assert plain.received_options[0].integrator_fee_bps == 30


@pytest.mark.asyncio()
async def test_fetch_first_returns_without_waiting_for_others(swap_params):
    slow = StubProvider('slow', delay=2)
    orchestrator = orchestrator_for(slow, StubProvider('fast', delay=0.01))

    start = perf_counter()
    quote = await orchestrator.fetch_first(swap_params)
    elapsed = perf_counter() - start

    assert quote.provider == 'fast'
    assert elapsed < 1
    assert slow.finished is False
    assert slow.cancelled is False
    await drain_abandoned_calls()


@pytest.mark.asyncio()
async def test_fetch_first_returns_failure_when_it_resolves_first(swap_params):
    orchestrator = orchestrator_for(
        StubProvider('good', delay=0.2),
        StubProvider('broken', failures=1),
    )

    quote = await orchestrator.fetch_first(swap_params)

    assert quote.provider == 'broken'
    assert quote.success is False
    await drain_abandoned_calls()


@pytest.mark.asyncio()
async def test_fetch_first_cancels_losers_when_configured(swap_params):
    slow = StubProvider('slow', delay=2)
    orchestrator = orchestrator_for(slow, StubProvider('fast'), cancel_abandoned_calls=True)

    quote = await orchestrator.fetch_first(swap_params)
    # let the cancellation reach the provider call
    await asyncio.sleep(0.01)

    assert quote.provider == 'fast'
    assert slow.cancelled is True
