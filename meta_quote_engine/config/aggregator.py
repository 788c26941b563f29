from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from meta_quote_engine.clients.blockchain.simulation_client import SimulationClient
from meta_quote_engine.config import settings
from meta_quote_engine.models.options_models import (
    MissingSimulationClientPolicy,
    RetryPolicy,
    SwapOptions,
)
from meta_quote_engine.providers import BaseProvider, ProviderRegistry
from meta_quote_engine.utils.common import address_to_lower
from meta_quote_engine.utils.errors import ConfigurationError


class AggregationOptions(BaseModel):
    """Options accepted by create_config. Unset values default from settings."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra='forbid')

    deadline_ms: int = Field(
        settings.DEADLINE_MS, ge=settings.MIN_DEADLINE_MS, le=settings.MAX_DEADLINE_MS
    )
    retry_policy: RetryPolicy = RetryPolicy()
    integrator_fee_address: Optional[address_to_lower] = None
    integrator_fee_bps: int = 0
    integrator_surplus_bps: int = 0
    integrator_surplus_address: Optional[address_to_lower] = None
    simulation_clients: Dict[int, SimulationClient] = {}
    missing_simulation_client_policy: MissingSimulationClientPolicy = MissingSimulationClientPolicy.PASS_THROUGH
    simulation_concurrency: int = Field(settings.SIMULATION_CONCURRENCY, ge=1)
    # Cancel calls still pending when a fastest race is decided instead of leaving them running.
    cancel_abandoned_calls: bool = False

    @field_validator('simulation_clients', mode='before')
    @classmethod
    def key_clients_by_chain(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
            clients = {}
            for client in value:
                chain_id = getattr(client, 'chain_id', None)
                if chain_id is None:
                    raise ValueError(f'{client!r} has no chain_id')
                if chain_id in clients:
                    raise ValueError(f'More than one simulation client for chain {chain_id}')
                clients[chain_id] = client
            return clients
        return value

    def swap_options(self) -> SwapOptions:
        return SwapOptions(
            integrator_fee_address=self.integrator_fee_address,
            integrator_fee_bps=self.integrator_fee_bps,
            integrator_surplus_bps=self.integrator_surplus_bps,
            integrator_surplus_address=self.integrator_surplus_address,
        )


class Config:
    """
    Validated bundle of providers and options. Read only once built, safe to share
    between concurrent calls. Build it with create_config.
    """
    __slots__ = ('providers', 'options', 'swap_options', 'simulation_clients')

    def __init__(self, providers: Tuple[BaseProvider, ...], options: AggregationOptions):
        setter = super().__setattr__
        setter('providers', providers)
        setter('options', options)
        setter('swap_options', options.swap_options())
        setter('simulation_clients', MappingProxyType(dict(options.simulation_clients)))

    def __setattr__(self, key, value):
        raise AttributeError(f'{self.__class__.__name__} is read only')

    def __delattr__(self, key):
        raise AttributeError(f'{self.__class__.__name__} is read only')

    def __repr__(self):
        return f'{self.__class__.__name__}(providers={self.provider_names}, options={self.options!r})'

    @property
    def provider_names(self) -> Tuple[str, ...]:
        return tuple(provider.name() for provider in self.providers)

    @property
    def deadline_ms(self) -> int:
        return self.options.deadline_ms

    @property
    def retry_policy(self) -> RetryPolicy:
        return self.options.retry_policy

    def simulation_client(self, chain_id: int) -> Optional[SimulationClient]:
        return self.simulation_clients.get(chain_id)


def create_config(
    providers: Iterable[BaseProvider],
    options: Union[AggregationOptions, Mapping[str, Any], None] = None,
) -> Config:
    """
    Validate providers and options and freeze them into a Config.

    Raises:
        ConfigurationError: providers is empty, holds duplicates or non adapters,
            or options are invalid
    """
    registry = ProviderRegistry(*(providers or ()))
    if not len(registry):
        raise ConfigurationError('At least one provider is required')

    if options is None:
        options = AggregationOptions()
    elif not isinstance(options, AggregationOptions):
        try:
            options = AggregationOptions.model_validate(dict(options))
        except ValidationError as e:
            raise ConfigurationError(f'Invalid aggregation options: {e}') from e
    try:
        options.swap_options()
    except ValidationError as e:
        raise ConfigurationError(f'Invalid integrator fee options: {e}') from e

    return Config(tuple(registry), options)
