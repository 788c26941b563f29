from unittest.mock import patch

import pytest
from pydantic import ValidationError

from meta_quote_engine.config import settings
from meta_quote_engine.config.aggregator import AggregationOptions, create_config
from meta_quote_engine.models.options_models import MissingSimulationClientPolicy
from meta_quote_engine.providers import (
    PROVIDER_BUILDERS,
    ProviderRegistry,
    build_providers,
    register_provider_builder,
)
from meta_quote_engine.tests.fixtures.providers_clients import (
    FEE_ADDRESS,
    StubProvider,
    StubSimulationClient,
)
from meta_quote_engine.utils.errors import ConfigurationError


def test_defaults_come_from_settings():
    config = create_config([StubProvider('a')])

    assert config.deadline_ms == settings.DEADLINE_MS
    assert config.retry_policy.num_retries == settings.NUM_RETRIES
    assert config.options.missing_simulation_client_policy == MissingSimulationClientPolicy.PASS_THROUGH
    assert config.options.cancel_abandoned_calls is False
    assert dict(config.simulation_clients) == {}


def test_empty_providers():
    with pytest.raises(ConfigurationError):
        create_config([])


def test_duplicate_providers():
    with pytest.raises(ConfigurationError):
        create_config([StubProvider('a'), StubProvider('b'), StubProvider('a')])


def test_not_a_provider():
    with pytest.raises(ConfigurationError):
        create_config([StubProvider('a'), object()])


@pytest.mark.parametrize(
    'options',
    [
        {'retry_policy': {'num_retries': -1}},
        {'retry_policy': {'num_retries': settings.MAX_RETRIES + 1}},
        {'retry_policy': {'backoff_multiplier': 0.5}},
        {'retry_policy': {'initial_delay_ms': settings.MAX_INITIAL_RETRY_DELAY_MS + 1}},
        {'deadline_ms': 0},
        {'integrator_fee_bps': 25},
        {'integrator_fee_address': FEE_ADDRESS},
        {'simulation_concurrency': 0},
        {'unknown_option': True},
    ],
)
def test_invalid_options(options):
    with pytest.raises(ConfigurationError):
        create_config([StubProvider('a')], options)


def test_fee_options():
    config = create_config(
        [StubProvider('a')],
        {
            'integrator_fee_address': FEE_ADDRESS.upper().replace('0X', '0x'),
            'integrator_surplus_bps': 100,
        },
    )

    assert config.swap_options.integrator_fee_address == FEE_ADDRESS
    assert config.swap_options.surplus_address == FEE_ADDRESS


def test_simulation_clients_keyed_by_chain_id():
    mainnet, polygon = StubSimulationClient(chain_id=1), StubSimulationClient(chain_id=137)

    config = create_config([StubProvider('a')], {'simulation_clients': [mainnet, polygon]})

    assert config.simulation_client(1) is mainnet
    assert config.simulation_client(137) is polygon
    assert config.simulation_client(56) is None


def test_two_simulation_clients_for_one_chain():
    clients = [StubSimulationClient(chain_id=1), StubSimulationClient(chain_id=1)]
    with pytest.raises(ConfigurationError):
        create_config([StubProvider('a')], {'simulation_clients': clients})


def test_config_is_read_only():
    client = StubSimulationClient(chain_id=1)
    config = create_config(
        [StubProvider('a')], AggregationOptions(simulation_clients={1: client})
    )

    with pytest.raises(AttributeError):
        config.providers = ()
    with pytest.raises(TypeError):
        config.simulation_clients[137] = client
    with pytest.raises(ValidationError):
        config.options.deadline_ms = 1


def test_registry_lookup():
    a, b = StubProvider('a'), StubProvider('b')
    registry = ProviderRegistry(a, b)

    assert registry['b'] is b
    assert registry.get('c') is None
    assert registry.names() == ['a', 'b']
    assert list(registry) == [a, b]


def test_build_providers_from_entries():
    with patch.dict(PROVIDER_BUILDERS, clear=True):
        register_provider_builder('stub', lambda config: StubProvider(**config))

        [provider] = build_providers([{'provider': 'stub', 'config': {'name': 'stub_one'}}])

        assert provider.name() == 'stub_one'
        with pytest.raises(ConfigurationError):
            register_provider_builder('stub', lambda config: StubProvider(**config))
        with pytest.raises(ConfigurationError):
            build_providers([{'provider': 'missing'}])
        with pytest.raises(ConfigurationError):
            build_providers([{'config': {}}])
