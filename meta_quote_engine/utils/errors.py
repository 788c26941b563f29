from abc import abstractmethod
from typing import Optional

from meta_quote_engine.utils.logger import LogArgs


class UserMistakes:
    error_owner = 'user'


class OurMistakes:
    error_owner = 'engine'


class ProviderMistakes:
    error_owner = 'provider'


class ConfigurationError(Exception):
    """Invalid engine configuration. Raised synchronously, never retried."""


class NotConfiguredError(ConfigurationError):
    """An operation was called before a Config was supplied."""


class BaseAggregationProviderError(Exception):
    """common error for aggregation providers"""

    @property
    @abstractmethod
    def msg_to_log(self):
        ...

    @property
    @abstractmethod
    def error_owner(self):
        ...

    def __init__(self, provider: str, message: Optional[str] = None, **kwargs):
        super().__init__(provider, message)
        self.provider = provider
        self.message = message
        self.kwargs = kwargs

    def __str__(self):
        return f'{self.msg_to_log}. Source: {self.provider}'

    def __repr__(self):
        return f'{self.__class__.__name__}({self.provider}, {self.message}, {self.kwargs})'

    @property
    def description(self) -> str:
        if self.message:
            return f'{self.msg_to_log}: {self.message}'
        return self.msg_to_log

    def to_dict(self):
        return {
            'provider': self.provider,
            'reason': self.message,
            'error_owner': self.error_owner,
            **self.kwargs,
        }

    def to_log_args(self):
        return (
            f'{self.msg_to_log.lower()}. Source: %({LogArgs.aggregation_provider})s',
            {LogArgs.aggregation_provider: self.provider},
        )


class AggregationProviderError(ProviderMistakes, BaseAggregationProviderError):
    """common error for aggregation providers"""
    msg_to_log = 'Unhandled error'


class InsufficientLiquidityError(ProviderMistakes, BaseAggregationProviderError):
    """Provider's API cannot find a liquidity for the swap"""
    msg_to_log = 'Cannot find a liquidity pools for swap'


class ParseResponseError(OurMistakes, BaseAggregationProviderError):
    """When provider's API returns invalid response, or we parse it wrong"""
    msg_to_log = 'Cannot parse response'


class ProviderTimeoutError(ProviderMistakes, BaseAggregationProviderError):
    """When provider does not respond in time"""
    msg_to_log = 'Provider is unavailable'


class UnsupportedFeatureError(UserMistakes, BaseAggregationProviderError):
    """The request needs a feature the provider does not offer"""
    msg_to_log = 'Provider does not support the requested features'


class UnexpectedProviderError(OurMistakes, BaseAggregationProviderError):
    """Provider adapter raised something it should not have"""
    msg_to_log = 'Provider adapter crashed'


class SimulationError(Exception):
    """Simulated replay of a quote did not produce a usable result."""

    def __init__(self, message: str, block_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.block_number = block_number


class SimulationTransportError(SimulationError):
    """The simulation client could not be reached or answered garbage.

    Says nothing about whether the swap itself would succeed.
    """


class SimulationUnavailableError(SimulationError):
    """No simulation client is configured for the swap's chain."""


class SimulationRevertError(SimulationError):
    """One or more calls reverted while replaying a quote."""

    def __init__(self, failures: list, block_number: Optional[int] = None):
        message = f'Simulation reverted on the following calls (block={block_number}):\n'
        for call, result in failures:
            message += f'Call to {call.to} with data: {call.data}\n'
            message += f'Revert return data: {result.return_data}\n'
            if result.error:
                message += f'Error: {result.error}\n'
        super().__init__(message, block_number)
        self.failures = failures

    @property
    def reason(self) -> str:
        for _, result in self.failures:
            if result.error:
                return result.error
        return 'execution reverted'
