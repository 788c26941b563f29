from typing import Any, List, Optional, Tuple

from meta_quote_engine.config.aggregator import Config, create_config
from meta_quote_engine.models.options_models import QuoteSelectionStrategy
from meta_quote_engine.models.quote_models import Quote, SuccessfulQuote, SwapParams
from meta_quote_engine.services.orchestrator import QuoteOrchestrator
from meta_quote_engine.services.simulation import SimulationValidator
from meta_quote_engine.services.strategies import Strategy, resolve_strategy
from meta_quote_engine.utils.errors import NotConfiguredError
from meta_quote_engine.utils.logger import LogArgs, get_logger

logger = get_logger(__name__)


class MetaAggregator:
    """
    Entry point of the engine: queries every configured provider, validates the quotes
    by simulation and picks the best one. Holds no state besides its Config, one
    instance can serve any number of concurrent requests.
    """

    def __init__(self, config: Optional[Config]):
        if config is None:
            raise NotConfiguredError(
                'MetaAggregator needs a Config. Build one with create_config(providers, options)'
            )
        self.config = config
        self.orchestrator = QuoteOrchestrator(config)
        self.validator = SimulationValidator(
            config.simulation_clients,
            missing_client_policy=config.options.missing_simulation_client_policy,
            concurrency=config.options.simulation_concurrency,
        )

    @property
    def providers(self) -> Tuple[str, ...]:
        return self.config.provider_names

    def clone(self, **overrides: Any) -> 'MetaAggregator':
        """Same providers, options patched with overrides."""
        options = {**dict(self.config.options), **overrides}
        return MetaAggregator(create_config(self.config.providers, options))

    async def get_raw_quotes(self, params: SwapParams) -> List[Quote]:
        """One quote per provider as the providers returned them."""
        return await self.orchestrator.fetch_all(params)

    async def get_quotes(self, params: SwapParams) -> List[Quote]:
        """One quote per provider, successful ones validated by simulation."""
        quotes = await self.orchestrator.fetch_all(params)
        return await self.validator.simulate_quotes(params, quotes)

    async def get_successful_quotes(self, params: SwapParams) -> List[SuccessfulQuote]:
        return [quote for quote in await self.get_quotes(params) if quote.success]

    async def fetch_best_quote(
        self,
        params: SwapParams,
        strategy: Strategy = QuoteSelectionStrategy.QUOTED_PRICE,
    ) -> Optional[Quote]:
        """
        Returns:
            The quote picked by strategy, None when no quote qualifies.
            fastest returns the first resolved quote, unsimulated and possibly failed,
            without waiting for the other providers.
        Raises:
            ValueError: strategy is unknown
        """
        select = resolve_strategy(strategy)
        log_args = {LogArgs.strategy: getattr(strategy, 'value', strategy), LogArgs.chain_id: params.chain_id}
        logger.debug(
            'Fetching best quote with %(strategy)s strategy on chain %(chain_id)s',
            log_args,
            extra={key: str(value) for key, value in log_args.items()},
        )
        if not callable(strategy) and QuoteSelectionStrategy(strategy) == QuoteSelectionStrategy.FASTEST:
            return await self.orchestrator.fetch_first(params)

        quotes = await self.get_quotes(params)
        return select(quotes) if quotes else None
