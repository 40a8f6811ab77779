import pytest

from conftest import HOUR, NOW, make_args
from lmsr_market.engine.market import (
    STAGE_OPEN,
    STAGE_PAUSED,
    STAGE_PENDING,
    Market,
    assert_outcome,
    assert_trading_allowed,
    deposit_collateral,
    is_finalized,
    new_market,
    open_market,
    pause_market,
)
from lmsr_market.errors import (
    ArithmeticOverflowError,
    InvalidOrderError,
    InvalidOutcomeError,
    StageError,
    UnauthorizedError,
    ValidationError,
)

@pytest.fixture
def market(params) -> Market:
    return new_market(0, make_args(n_outcomes=3), "creator", params)

def fund(market: Market, params) -> None:
    deposit_collateral(market, market['minimum_deposit'], params)

def test_new_market_defaults(params):
    args = make_args()
    del args['fee_owner'], args['operator'], args['oracle'], args['liquidity']
    market = new_market(7, args, "alice", params)

    assert market['id'] == 7
    assert market['stage'] == STAGE_PENDING
    assert market['fee_owner'] == "alice"
    assert market['operator'] == "alice"
    assert market['oracle'] == "alice"
    assert market['liquidity'] == params['default_liquidity']
    assert market['shares'] == [0.0, 0.0]
    assert market['minimum_deposit'] == 100 * 10**9
    assert market['payouts'] is None
    assert market['accounts'] == {}

def test_oracle_defaults_to_operator(params):
    args = make_args()
    args['oracle'] = None
    market = new_market(0, args, "creator", params)
    assert market['oracle'] == "operator"

def test_outcome_ids_must_match_position(params):
    args = make_args()
    args['outcomes'][1]['id'] = 5
    with pytest.raises(ValidationError, match="must match their position"):
        new_market(0, args, "creator", params)

@pytest.mark.parametrize("fee", [-1, 101])
def test_trade_fee_out_of_range(params, fee):
    with pytest.raises(ValidationError, match="trade_fee_bps"):
        new_market(0, make_args(fee=fee), "creator", params)

def test_decimals_below_rounding_precision(params):
    with pytest.raises(ValidationError, match="below rounding precision"):
        new_market(0, make_args(decimals=0), "creator", params)

def test_minimum_deposit_overflow(params):
    with pytest.raises(ArithmeticOverflowError):
        new_market(0, make_args(decimals=40), "creator", params)

@pytest.mark.parametrize("liquidity", [-5.0, float('inf'), float('nan')])
def test_invalid_liquidity(params, liquidity):
    with pytest.raises(ValidationError, match="liquidity"):
        new_market(0, make_args(liquidity=liquidity), "creator", params)

def test_open_requires_minimum_deposit(market, params, now):
    deposit_collateral(market, market['minimum_deposit'] - 1, params)
    with pytest.raises(ValidationError, match="below minimum"):
        open_market(market, now)
    assert market['stage'] == STAGE_PENDING

    deposit_collateral(market, 1, params)
    open_market(market, now)
    assert market['stage'] == STAGE_OPEN

def test_open_requires_future_times(market, params):
    fund(market, params)
    with pytest.raises(ValidationError, match="end_time"):
        open_market(market, NOW + HOUR)
    with pytest.raises(ValidationError, match="resolution_time"):
        market['end_time'] = NOW + 3 * HOUR
        open_market(market, NOW + 2 * HOUR)
    assert market['stage'] == STAGE_PENDING

def test_open_without_outcomes(params, now):
    market = new_market(0, make_args(n_outcomes=0), "creator", params)
    fund(market, params)
    with pytest.raises(ValidationError, match="no outcomes"):
        open_market(market, now)

def test_pause_and_reopen(market, params, now):
    fund(market, params)
    open_market(market, now)
    pause_market(market)
    assert market['stage'] == STAGE_PAUSED
    with pytest.raises(StageError):
        pause_market(market)
    open_market(market, now)
    assert market['stage'] == STAGE_OPEN

def test_open_checks_stage_before_validation(market, params, now):
    fund(market, params)
    open_market(market, now)
    # Past end_time would fail validation, but the stage is rejected first
    with pytest.raises(StageError):
        open_market(market, NOW + 5 * HOUR)

def test_pause_requires_open(market):
    with pytest.raises(StageError, match="PENDING"):
        pause_market(market)

def test_only_operator_may_open_or_pause(market, params, now):
    fund(market, params)
    with pytest.raises(UnauthorizedError, match="operator"):
        open_market(market, now, caller="mallory")
    open_market(market, now, caller="operator")
    with pytest.raises(UnauthorizedError):
        pause_market(market, caller="oracle")
    pause_market(market, caller="operator")

def test_deposit_only_while_pending(market, params, now):
    with pytest.raises(InvalidOrderError):
        deposit_collateral(market, 0, params)
    fund(market, params)
    open_market(market, now)
    with pytest.raises(StageError):
        deposit_collateral(market, 1, params)
    assert market['deposited_collateral'] == market['minimum_deposit']

def test_trading_window(market, params, now):
    with pytest.raises(StageError):
        assert_trading_allowed(market, now)
    fund(market, params)
    open_market(market, now)
    assert_trading_allowed(market, now)
    with pytest.raises(StageError, match="trading period has ended"):
        assert_trading_allowed(market, market['end_time'])

def test_assert_outcome(market):
    assert_outcome(market, 2)
    with pytest.raises(InvalidOutcomeError):
        assert_outcome(market, 3)
    with pytest.raises(InvalidOutcomeError):
        assert_outcome(market, -1)
    assert not is_finalized(market)
