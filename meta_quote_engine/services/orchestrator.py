import asyncio
from time import perf_counter
from typing import List, Set

from meta_quote_engine.config.aggregator import Config
from meta_quote_engine.models.quote_models import Quote, SwapParams
from meta_quote_engine.providers import BaseProvider
from meta_quote_engine.utils.common import ms_to_seconds
from meta_quote_engine.utils.errors import (
    ConfigurationError,
    NotConfiguredError,
    ProviderTimeoutError,
    UnexpectedProviderError,
)
from meta_quote_engine.utils.logger import LogArgs, capture_exception, get_logger

logger = get_logger(__name__)

# Calls nobody waits for anymore. Referenced here until they finish so the event loop
# does not garbage collect them mid-flight.
_abandoned_tasks: Set[asyncio.Task] = set()


def _forget_abandoned(task: asyncio.Task) -> None:
    _abandoned_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f'Abandoned call {task.get_name()} failed: {exc!r}', extra={LogArgs.ex: repr(exc)})
    else:
        logger.debug(f'Abandoned call {task.get_name()} resolved')


class QuoteOrchestrator:
    """Fans a swap request out to every configured provider at once."""

    def __init__(self, config: Config):
        if config is None:
            raise NotConfiguredError('QuoteOrchestrator needs a Config, build one with create_config')
        if not isinstance(config, Config) or not config.providers:
            raise ConfigurationError(f'Invalid config: {config!r}')
        self.config = config

    def deadline_ms(self, provider: BaseProvider) -> int:
        return provider.timeout_ms or self.config.deadline_ms

    def _abandon(self, task: asyncio.Task) -> None:
        if task.done():
            return
        if self.config.options.cancel_abandoned_calls:
            task.cancel()
            return
        _abandoned_tasks.add(task)
        task.add_done_callback(_forget_abandoned)

    async def call_provider(self, provider: BaseProvider, params: SwapParams) -> Quote:
        """
        Single provider call with config retry policy and fee options.

        Provider failures already come back as FailedQuote, anything the adapter raises
        on top of that is a bug in the adapter. It is reported and recorded as a failure
        so the other providers are unaffected.
        """
        start = perf_counter()
        try:
            quote = await provider.fetch_quote(
                params, self.config.retry_policy, self.config.swap_options
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            capture_exception()
            exc = UnexpectedProviderError(provider.name(), repr(e))
            logger.exception(*exc.to_log_args(), extra=exc.to_dict())
            quote = provider.failed_quote(exc).model_copy(
                update={'latency_ms': (perf_counter() - start) * 1000}
            )
        return self._activate_features(provider, quote)

    def _activate_features(self, provider: BaseProvider, quote: Quote) -> Quote:
        requested = self.config.swap_options.requested_features()
        if not quote.success or not requested:
            return quote
        activated = [feature for feature in requested if provider.supports_feature(feature)]
        return quote.model_copy(update={'activated_features': activated})

    async def call_with_deadline(self, provider: BaseProvider, params: SwapParams) -> Quote:
        """
        call_provider bounded by the provider deadline, measured from this dispatch.

        An unresolved call is abandoned (or cancelled when the config asks for it)
        and a FailedQuote with ProviderTimeoutError is returned in its place.
        """
        deadline_ms = self.deadline_ms(provider)
        start = perf_counter()
        call = asyncio.create_task(
            self.call_provider(provider, params), name=f'quote:{provider.name()}'
        )
        try:
            done, _ = await asyncio.wait({call}, timeout=ms_to_seconds(deadline_ms))
        except asyncio.CancelledError:
            self._abandon(call)
            raise
        if call in done:
            return call.result()

        self._abandon(call)
        exc = ProviderTimeoutError(
            provider.name(), f'No response within {deadline_ms} ms', deadline_ms=deadline_ms
        )
        logger.warning(*exc.to_log_args(), extra=exc.to_dict())
        return provider.failed_quote(exc).model_copy(
            update={'latency_ms': (perf_counter() - start) * 1000}
        )

    def prepare_quotes(self, params: SwapParams) -> List[asyncio.Task]:
        """Start one deadline-bounded call per provider, in registration order."""
        return [
            asyncio.create_task(
                self.call_with_deadline(provider, params), name=f'deadline:{provider.name()}'
            )
            for provider in self.config.providers
        ]

    async def fetch_all(self, params: SwapParams) -> List[Quote]:
        """Exactly one Quote per configured provider, in registration order."""
        tasks = self.prepare_quotes(params)
        try:
            quotes = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                self._abandon(task)
            raise
        log_args = {
            LogArgs.chain_id: params.chain_id,
            LogArgs.quotes_count: sum(1 for quote in quotes if quote.success),
        }
        logger.debug(
            f'Got %({LogArgs.quotes_count})s successful quotes out of {len(quotes)} '
            f'on chain %({LogArgs.chain_id})s',
            log_args,
            extra=log_args,
        )
        return list(quotes)

    async def fetch_first(self, params: SwapParams) -> Quote:
        """
        Race every provider and return the first quote to resolve, success or failure.

        The rest are not awaited. They keep running until their own deadline unless
        cancel_abandoned_calls is set.
        """
        tasks = self.prepare_quotes(params)
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                self._abandon(task)
        # Calls finished within the same loop iteration are taken in registration order.
        winner = next(task for task in tasks if task in done)
        return winner.result()
