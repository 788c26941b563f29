import asyncio
from abc import abstractmethod
from functools import partial
from time import perf_counter
from typing import Iterable, Optional, Tuple

from aiohttp import ClientError, ClientResponseError, ServerDisconnectedError
from pydantic import ValidationError

from meta_quote_engine.models.options_models import RetryPolicy, SwapOptions
from meta_quote_engine.models.quote_models import (
    AggregatorFeature,
    FailedQuote,
    Quote,
    SuccessfulQuote,
    SwapParams,
)
from meta_quote_engine.services.retry import execute_with_retry
from meta_quote_engine.utils.errors import (
    AggregationProviderError,
    BaseAggregationProviderError,
    ParseResponseError,
    ProviderTimeoutError,
    UnsupportedFeatureError,
)
from meta_quote_engine.utils.logger import capture_exception, get_logger

logger = get_logger(__name__)

# Failures of a single attempt that become a FailedQuote instead of propagating.
PROVIDER_FAILURES = (
    BaseAggregationProviderError,
    ClientError,
    asyncio.TimeoutError,
    KeyError,
    ValidationError,
)


class BaseProvider:
    PROVIDER_NAME = 'base_provider'
    FEATURES: Tuple[AggregatorFeature, ...] = (AggregatorFeature.EXACT_IN,)

    def __init__(
        self,
        negotiated_features: Iterable[AggregatorFeature] = (),
        timeout_ms: Optional[int] = None,
    ):
        """
        Args:
            negotiated_features: integrator fee features enabled for this provider by agreement,
                on top of the ones it supports out of the box
            timeout_ms: per-provider deadline that overrides the one from Config
        """
        self.negotiated_features = tuple(negotiated_features)
        self.timeout_ms = timeout_ms

    def name(self) -> str:
        return self.PROVIDER_NAME

    def __repr__(self):
        return f'{self.__class__.__name__}({self.name()})'

    @abstractmethod
    async def try_fetch_quote(
        self,
        params: SwapParams,
        options: SwapOptions,
    ) -> SuccessfulQuote:
        """
        The try_fetch_quote function makes one attempt to get a swap quote from the provider.
        Args:
            self: Access the class attributes
            params:SwapParams: Tokens, amounts, chain and swapper of the requested swap
            options:SwapOptions: Integrator fee settings to forward to the provider

        Returns:
            A SuccessfulQuote with the amounts, network fee and transaction data for the swap.

        Raises:
            BaseAggregationProviderError: the provider refused or failed to quote.
                Transport and parse errors may also be left to bubble up,
                fetch_quote maps them with handle_exception.
        """

    def supports_feature(self, feature: AggregatorFeature) -> bool:
        return feature in self.FEATURES or feature in self.negotiated_features

    def supports_all_features(self, features: Iterable[AggregatorFeature]) -> bool:
        return all(self.supports_feature(feature) for feature in features)

    async def fetch_quote(
        self,
        params: SwapParams,
        retry_policy: Optional[RetryPolicy] = None,
        options: Optional[SwapOptions] = None,
    ) -> Quote:
        """
        Get a quote from the provider, retrying failed attempts per retry_policy.

        Never raises for provider failures: HTTP errors, malformed responses, timeouts and
        rejections come back as a FailedQuote. Latency is measured from this call to the
        resolution of the returned quote, retries included.
        """
        retry_policy = retry_policy or RetryPolicy()
        options = options or SwapOptions()
        start = perf_counter()

        required = params.required_features()
        if not self.supports_all_features(required):
            exc = UnsupportedFeatureError(
                self.name(),
                ', '.join(feature.value for feature in required),
            )
            logger.debug(*exc.to_log_args(), extra=exc.to_dict())
            quote = self.failed_quote(exc)
        else:
            quote = await execute_with_retry(
                partial(self._attempt, params, options), retry_policy
            )
        return quote.model_copy(update={'latency_ms': (perf_counter() - start) * 1000})

    async def _attempt(self, params: SwapParams, options: SwapOptions) -> Quote:
        try:
            quote = await self.try_fetch_quote(params, options)
        except PROVIDER_FAILURES as e:
            exc = self.handle_exception(e, chain_id=params.chain_id)
            return self.failed_quote(exc)
        return quote.model_copy(update={'provider': self.name()})

    def failed_quote(self, exc: BaseAggregationProviderError) -> FailedQuote:
        return FailedQuote(
            provider=self.name(),
            error=exc.description,
            error_type=type(exc).__name__,
            details=exc.to_dict(),
        )

    def handle_exception(
        self, exception: Exception, **kwargs
    ) -> BaseAggregationProviderError:
        if isinstance(exception, BaseAggregationProviderError):
            return exception
        capture_exception()
        if isinstance(exception, (KeyError, ValidationError)):
            exc = ParseResponseError(self.name(), str(exception), **kwargs)
        elif isinstance(exception, (ServerDisconnectedError, asyncio.TimeoutError)):
            exc = ProviderTimeoutError(self.name(), str(exception), **kwargs)
        elif isinstance(exception, ClientResponseError):
            exc = AggregationProviderError(
                self.name(),
                exception.message,
                status=exception.status,
                url=str(exception.request_info.url),
                **kwargs,
            )
        else:
            exc = AggregationProviderError(self.name(), str(exception), **kwargs)
        logger.warning(*exc.to_log_args(), extra=exc.to_dict())
        return exc
