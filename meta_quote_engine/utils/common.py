from pydantic import constr

from meta_quote_engine.config import settings

address_to_lower = constr(
    strip_whitespace=True, to_lower=True
)

NATIVE_TOKENS = frozenset({settings.NATIVE_TOKEN_ADDRESS, settings.ZERO_ADDRESS})


def is_native_token(address: str) -> bool:
    return address.lower() in NATIVE_TOKENS


def ms_to_seconds(value: float) -> float:
    return value / 1000
