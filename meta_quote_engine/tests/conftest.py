from unittest.mock import Mock, patch

import pytest

from meta_quote_engine.clients.apm_client import apm_client as apm_client_instance
from meta_quote_engine.models.quote_models import SwapMode, SwapParams
from meta_quote_engine.tests.fixtures.providers_clients import NATIVE, SWAPPER, USDC, WETH


@pytest.fixture(autouse=True)
def apm_client():
    """Keep unexpected-error reporting away from a real APM server."""
    with patch.object(apm_client_instance, '_client', Mock()) as client:
        yield client


@pytest.fixture()
def swap_params() -> SwapParams:
    return SwapParams(
        chain_id=1,
        input_token=USDC,
        output_token=WETH,
        mode=SwapMode.EXACT_IN,
        input_amount=10**6,
        slippage_bps=50,
        swapper_account=SWAPPER,
    )


@pytest.fixture()
def native_swap_params() -> SwapParams:
    return SwapParams(
        chain_id=1,
        input_token=NATIVE,
        output_token=USDC,
        input_amount=10**18,
        slippage_bps=50,
        swapper_account=SWAPPER,
    )


@pytest.fixture()
def target_out_params() -> SwapParams:
    return SwapParams(
        chain_id=1,
        input_token=USDC,
        output_token=WETH,
        mode=SwapMode.TARGET_OUT,
        output_amount=10**18,
        slippage_bps=50,
        swapper_account=SWAPPER,
    )
