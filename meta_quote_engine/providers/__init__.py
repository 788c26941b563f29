from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from meta_quote_engine.providers.base_provider import BaseProvider
from meta_quote_engine.providers.http_provider import HttpProvider
from meta_quote_engine.utils.errors import ConfigurationError

T = TypeVar("T")

ProviderBuilder = Callable[[Mapping[str, Any]], BaseProvider]


class ProviderRegistry:
    """Providers keyed by name, in registration order. Names are unique."""

    def __init__(self, *providers: BaseProvider):
        self.provider_by_name: Dict[str, BaseProvider] = {}
        for provider in providers:
            if not isinstance(provider, BaseProvider):
                raise ConfigurationError(f'{provider!r} is not a provider adapter')
            name = provider.name()
            if name in self.provider_by_name:
                raise ConfigurationError(f'Provider {name} is configured more than once')
            self.provider_by_name[name] = provider

    def __getitem__(self, provider_name: str) -> BaseProvider:
        return self.provider_by_name[provider_name]

    def __iter__(self) -> Iterator[BaseProvider]:
        return iter(self.provider_by_name.values())

    def __len__(self) -> int:
        return len(self.provider_by_name)

    def get(self, provider_name: str, default: T = None) -> BaseProvider | T:
        return self.provider_by_name.get(provider_name, default)

    def names(self) -> List[str]:
        return list(self.provider_by_name)


class ProviderEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str  # name a builder was registered under
    config: Dict[str, Any] = {}  # keyword arguments for the builder


# Filled at startup by register_provider_builder, one entry per integrated quoting service.
PROVIDER_BUILDERS: Dict[str, ProviderBuilder] = {}


def register_provider_builder(name: str, builder: ProviderBuilder) -> None:
    if name in PROVIDER_BUILDERS:
        raise ConfigurationError(f'Builder for provider {name} is already registered')
    PROVIDER_BUILDERS[name] = builder


def build_providers(entries: Iterable[ProviderEntry | Mapping[str, Any]]) -> List[BaseProvider]:
    """
    Build provider adapters from configuration entries like
    [{'provider': 'odos', 'config': {'referral_code': 1}}].

    Raises:
        ConfigurationError: if an entry names a provider without a registered builder
    """
    providers = []
    for entry in entries:
        if not isinstance(entry, ProviderEntry):
            try:
                entry = ProviderEntry.model_validate(entry)
            except ValidationError as e:
                raise ConfigurationError(f'Invalid provider entry: {e}') from e
        builder = PROVIDER_BUILDERS.get(entry.provider)
        if builder is None:
            raise ConfigurationError(f'Unknown provider configured: {entry.provider}')
        providers.append(builder(entry.config))
    return providers


__all__ = [
    'BaseProvider',
    'HttpProvider',
    'ProviderBuilder',
    'ProviderEntry',
    'ProviderRegistry',
    'PROVIDER_BUILDERS',
    'build_providers',
    'register_provider_builder',
]
