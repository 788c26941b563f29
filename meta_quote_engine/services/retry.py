from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from meta_quote_engine.models.options_models import RetryPolicy
from meta_quote_engine.utils.common import ms_to_seconds
from meta_quote_engine.utils.logger import LogArgs, get_logger

logger = get_logger(__name__)

T = TypeVar('T')


def is_failed_quote(result: Any) -> bool:
    return getattr(result, 'success', True) is False


def _last_result(retry_state: RetryCallState):
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    result = retry_state.outcome.result()
    log_args = {
        LogArgs.aggregation_provider: getattr(result, 'provider', None),
        LogArgs.attempt: retry_state.attempt_number,
        LogArgs.delay_ms: retry_state.upcoming_sleep * 1000,
    }
    logger.debug(
        f'Attempt %({LogArgs.attempt})s failed for %({LogArgs.aggregation_provider})s, '
        f'retrying in %({LogArgs.delay_ms})s ms',
        log_args,
        extra=log_args,
    )


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    is_failure: Callable[[T], bool] = is_failed_quote,
) -> T:
    """
    Run operation up to policy.attempts times and return the first successful result.

    A result is a failure when is_failure(result) is true; failures are retried after
    the delay the policy schedules and the last one is returned once attempts run out.
    Exceptions raised by operation are not retried, they propagate at once.

    Args:
        operation: zero-argument coroutine function performing one attempt
        policy: RetryPolicy with attempts count and backoff schedule
        is_failure: predicate deciding whether a result should be retried

    Returns:
        The first successful result, or the last failed one.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_exponential(
            multiplier=ms_to_seconds(policy.initial_delay_ms),
            exp_base=policy.backoff_multiplier,
        ),
        retry=retry_if_result(is_failure),
        retry_error_callback=_last_result,
        before_sleep=_log_retry,
        reraise=True,
    )
    return await retrying(operation)
