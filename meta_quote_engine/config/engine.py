from pydantic_settings import BaseSettings


class EngineDefaults(BaseSettings):
    # Per-provider deadline, milliseconds.
    DEADLINE_MS: int = 8_000
    MIN_DEADLINE_MS: int = 10
    MAX_DEADLINE_MS: int = 120_000

    NUM_RETRIES: int = 1
    MAX_RETRIES: int = 10
    INITIAL_RETRY_DELAY_MS: int = 100
    MAX_INITIAL_RETRY_DELAY_MS: int = 10_000
    BACKOFF_MULTIPLIER: float = 2.0

    SIMULATION_CONCURRENCY: int = 4
    # Native balance granted to the swapper while simulating: 10000 ether in wei.
    SIMULATION_NATIVE_BALANCE: int = 10_000 * 10**18

    # Seconds. Transport timeout for HTTP providers and web3 calls.
    REQUEST_TIMEOUT: int = 7
    WEB3_TIMEOUT: int = 10
