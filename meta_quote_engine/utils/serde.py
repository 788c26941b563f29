import re
from typing import Any, List

import ujson
from pydantic import TypeAdapter

from meta_quote_engine.models.quote_models import Quote

BIGINT_PREFIX = '__bigint__:'
# Escapes strings that would otherwise read back as a tagged value.
STRING_PREFIX = '__string__:'
BIGINT_VALUE = re.compile(r'^-?\d+$')

_quotes_adapter = TypeAdapter(List[Quote])


def _tag_ints(item: Any) -> Any:
    # bool is an int subclass but stays a JSON boolean
    if isinstance(item, bool):
        return item
    if isinstance(item, int):
        return f'{BIGINT_PREFIX}{item}'
    if isinstance(item, str) and item.startswith((BIGINT_PREFIX, STRING_PREFIX)):
        return STRING_PREFIX + item
    if isinstance(item, dict):
        return {key: _tag_ints(value) for key, value in item.items()}
    if isinstance(item, (list, tuple)):
        return [_tag_ints(value) for value in item]
    return item


def _untag_ints(item: Any) -> Any:
    if isinstance(item, str) and item.startswith(STRING_PREFIX):
        return item[len(STRING_PREFIX):]
    if isinstance(item, str) and item.startswith(BIGINT_PREFIX):
        raw = item[len(BIGINT_PREFIX):]
        if BIGINT_VALUE.match(raw):
            return int(raw)
        return item
    if isinstance(item, dict):
        return {key: _untag_ints(value) for key, value in item.items()}
    if isinstance(item, list):
        return [_untag_ints(value) for value in item]
    return item


def serialize_with_bigint(item: Any) -> str:
    """
    Dump item to JSON with every integer written as '__bigint__:<decimal>',
    so receivers without arbitrary precision numbers get exact amounts back.
    Strings already starting with a tag prefix are escaped with '__string__:'.
    Read it with deserialize_with_bigint.
    """
    return ujson.dumps(_tag_ints(item))


def deserialize_with_bigint(payload: str) -> Any:
    return _untag_ints(ujson.loads(payload))


def quotes_to_json(quotes: List[Quote]) -> str:
    return serialize_with_bigint([quote.model_dump(mode='json') for quote in quotes])


def quotes_from_json(payload: str) -> List[Quote]:
    return _quotes_adapter.validate_python(deserialize_with_bigint(payload))
