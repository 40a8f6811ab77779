import pytest

from lmsr_market.config import EngineParams, get_default_engine_params
from lmsr_market.engine.market import CreateMarketArgs, Outcome
from lmsr_market.engine.state import ContractState, init_state
from lmsr_market.utils import NS_PER_SEC

NOW = 1_700_000_000 * NS_PER_SEC
HOUR = 3600 * NS_PER_SEC

@pytest.fixture
def params() -> EngineParams:
    return get_default_engine_params()

@pytest.fixture
def now() -> int:
    return NOW

def make_args(n_outcomes: int = 2, decimals: int = 9, fee: int = 0, liquidity: float = 50.0) -> CreateMarketArgs:
    return CreateMarketArgs(
        title="Will it rain tomorrow?",
        description="Resolves on the weather service report",
        collateral_token="usdc.token",
        collateral_decimals=decimals,
        end_time=NOW + HOUR,
        resolution_time=NOW + 2 * HOUR,
        trade_fee_bps=fee,
        outcomes=[Outcome(id=i, short_name=f"O{i}", long_name=f"Outcome {i}") for i in range(n_outcomes)],
        fee_owner="fees.owner",
        operator="operator",
        oracle="oracle",
        liquidity=liquidity,
    )

@pytest.fixture
def state() -> ContractState:
    return init_state()
