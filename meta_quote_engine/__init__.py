from meta_quote_engine.clients.blockchain.simulation_client import SimulationClient
from meta_quote_engine.clients.blockchain.web3_client import Web3SimulationClient
from meta_quote_engine.config.aggregator import AggregationOptions, Config, create_config
from meta_quote_engine.models.pricing_models import PricingSummary, QuotePricing, TokenPricing
from meta_quote_engine.models.options_models import (
    MissingSimulationClientPolicy,
    QuoteSelectionStrategy,
    RetryPolicy,
    SwapOptions,
)
from meta_quote_engine.models.quote_models import (
    AggregatorFeature,
    Approval,
    FailedQuote,
    Quote,
    SuccessfulQuote,
    SwapMode,
    SwapParams,
)
from meta_quote_engine.models.simulation_models import (
    QuotePerformance,
    SimulationFailure,
    SimulationResult,
    SimulationSuccess,
)
from meta_quote_engine.providers import (
    BaseProvider,
    HttpProvider,
    build_providers,
    register_provider_builder,
)
from meta_quote_engine.services.meta_aggregator import MetaAggregator
from meta_quote_engine.services.orchestrator import QuoteOrchestrator
from meta_quote_engine.services.performance import sort_quotes_by_performance
from meta_quote_engine.services.pricing import get_pricing
from meta_quote_engine.services.retry import execute_with_retry
from meta_quote_engine.services.simulation import SimulationValidator, simulate_quote
from meta_quote_engine.services.strategies import select_best
from meta_quote_engine.utils.serde import (
    deserialize_with_bigint,
    quotes_from_json,
    quotes_to_json,
    serialize_with_bigint,
)

__all__ = [
    'AggregationOptions',
    'AggregatorFeature',
    'Approval',
    'BaseProvider',
    'Config',
    'FailedQuote',
    'HttpProvider',
    'MetaAggregator',
    'MissingSimulationClientPolicy',
    'PricingSummary',
    'Quote',
    'QuoteOrchestrator',
    'QuotePerformance',
    'QuotePricing',
    'QuoteSelectionStrategy',
    'RetryPolicy',
    'SimulationClient',
    'SimulationFailure',
    'SimulationResult',
    'SimulationSuccess',
    'SimulationValidator',
    'SuccessfulQuote',
    'SwapMode',
    'SwapOptions',
    'SwapParams',
    'TokenPricing',
    'Web3SimulationClient',
    'build_providers',
    'create_config',
    'deserialize_with_bigint',
    'execute_with_retry',
    'get_pricing',
    'quotes_from_json',
    'quotes_to_json',
    'register_provider_builder',
    'select_best',
    'serialize_with_bigint',
    'sort_quotes_by_performance',
]
