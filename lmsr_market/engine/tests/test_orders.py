import pytest

from conftest import make_args
from lmsr_market.engine.ledger import outcome_balance, validate_ledger_consistency
from lmsr_market.engine.lmsr import price
from lmsr_market.engine.market import Market, deposit_collateral, new_market, open_market, pause_market
from lmsr_market.engine.orders import (
    DIRECTION_BUY,
    DIRECTION_SELL,
    buy,
    calc_buy_price,
    calc_fee,
    calc_price_without_fee,
    calc_sell_price,
    sell,
    withdraw_fees,
)
from lmsr_market.errors import (
    ArithmeticOverflowError,
    InsufficientBalanceError,
    InsufficientPaymentError,
    InvalidOrderError,
    InvalidOutcomeError,
    NoFeesAccruedError,
    SlippageExceededError,
    StageError,
)

ONE = 10**9  # one whole collateral unit at 9 decimals

def open_new(params, now, fee: int = 0, n_outcomes: int = 2) -> Market:
    market = new_market(0, make_args(n_outcomes=n_outcomes, fee=fee), "creator", params)
    deposit_collateral(market, market['minimum_deposit'], params)
    open_market(market, now)
    return market

@pytest.fixture
def market(params, now) -> Market:
    return open_new(params, now)

@pytest.fixture
def fee_market(params, now) -> Market:
    return open_new(params, now, fee=1)

def test_buy_price_rounds_up(market, params):
    # b = 50, ten shares from an even market cost 5.2496 before rounding
    assert calc_price_without_fee(market, 0, 10, DIRECTION_BUY, params) == 5_300_000_000
    assert calc_buy_price(market, 0, 10, params) > 5_200_000_000

def test_sell_price_rounds_down(market, params, now):
    buy(market, "alice", 0, 10, 6 * ONE, now, params)
    assert calc_price_without_fee(market, 0, 10, DIRECTION_SELL, params) == 5_200_000_000

def test_fee_is_percent_of_base_price(fee_market, params):
    assert calc_fee(fee_market, 5_300_000_000, params) == 53_000_000
    assert calc_fee(fee_market, 99, params) == 0
    assert calc_buy_price(fee_market, 0, 10, params) == 5_353_000_000

def test_unknown_direction(market, params):
    with pytest.raises(ValueError, match="Unknown order direction"):
        calc_price_without_fee(market, 0, 1, 'HOLD', params)

def test_quote_rejects_bad_outcome(market, params):
    with pytest.raises(InvalidOutcomeError):
        calc_buy_price(market, 2, 1, params)

def test_buy(fee_market, params, now):
    result = buy(fee_market, "alice", 0, 10, 6 * ONE, now, params)

    assert result['base_price'] == 5_300_000_000
    assert result['fee'] == 53_000_000
    assert result['cost'] == 5_353_000_000
    assert result['change'] == 6 * ONE - 5_353_000_000
    assert outcome_balance(fee_market, "alice", 0) == 10
    assert fee_market['shares'] == [10.0, 0.0]
    assert fee_market['fees_accrued'] == 53_000_000
    assert fee_market['volume'] == 5_300_000_000
    assert fee_market['collateral_pool'] == 5_300_000_000
    validate_ledger_consistency(fee_market)

def test_buy_exact_payment_leaves_no_change(fee_market, params, now):
    result = buy(fee_market, "alice", 0, 10, 5_353_000_000, now, params)
    assert result['change'] == 0

def test_buy_insufficient_payment_changes_nothing(fee_market, params, now):
    with pytest.raises(InsufficientPaymentError) as excinfo:
        buy(fee_market, "alice", 0, 10, 5_352_999_999, now, params)
    assert excinfo.value.required == 5_353_000_000
    assert fee_market['accounts'] == {}
    assert fee_market['shares'] == [0.0, 0.0]
    assert fee_market['fees_accrued'] == 0
    assert fee_market['volume'] == 0

@pytest.mark.parametrize("num_shares", [0, -10])
def test_buy_non_positive_quantity(market, params, now, num_shares):
    with pytest.raises(InvalidOrderError):
        buy(market, "alice", 0, num_shares, ONE, now, params)

def test_buy_requires_open_unexpired_market(market, params, now):
    with pytest.raises(StageError, match="trading period has ended"):
        buy(market, "alice", 0, 1, ONE, market['end_time'], params)
    pause_market(market)
    with pytest.raises(StageError):
        buy(market, "alice", 0, 1, ONE, now, params)

def test_buy_overflowing_estimate(market, params, now):
    with pytest.raises(ArithmeticOverflowError):
        buy(market, "alice", 0, 10**400, 10**30, now, params)
    assert market['accounts'] == {}

def test_sell(fee_market, params, now):
    buy(fee_market, "alice", 0, 10, 6 * ONE, now, params)
    result = sell(fee_market, "alice", 0, 10, 0, now, params)

    assert result['base_price'] == 5_200_000_000
    assert result['fee'] == 52_000_000
    assert result['sell_amount'] == 5_148_000_000
    assert result['transfers'] == [{
        'market_id': 0,
        'token': "usdc.token",
        'to_account': "alice",
        'amount': 5_148_000_000,
        'memo': "Paying 5148000000 for 10 shares to alice",
    }]
    assert outcome_balance(fee_market, "alice", 0) == 0
    assert fee_market['shares'] == [0.0, 0.0]
    assert fee_market['fees_accrued'] == 105_000_000
    assert fee_market['volume'] == 10_500_000_000
    # Rounding keeps the difference in the market
    assert fee_market['collateral_pool'] == 100_000_000
    validate_ledger_consistency(fee_market)

def test_sell_slippage_changes_nothing(fee_market, params, now):
    buy(fee_market, "alice", 0, 10, 6 * ONE, now, params)
    with pytest.raises(SlippageExceededError):
        sell(fee_market, "alice", 0, 10, 5_148_000_001, now, params)
    assert outcome_balance(fee_market, "alice", 0) == 10
    assert fee_market['shares'] == [10.0, 0.0]
    assert fee_market['fees_accrued'] == 53_000_000

def test_sell_more_than_held(market, params, now):
    buy(market, "alice", 1, 5, 5 * ONE, now, params)
    with pytest.raises(InsufficientBalanceError):
        sell(market, "alice", 1, 6, 0, now, params)
    assert market['fees_accrued'] == 0
    assert market['volume'] == market['collateral_pool']

def test_tiny_sell_pays_nothing(market, params, now):
    # p[0] is ~2e-9 here, so one share rounds down to nothing
    market['shares'] = [1.0, 1_000.0]
    market['accounts']["alice"] = [1, 1_000]
    result = sell(market, "alice", 0, 1, 0, now, params)
    assert result['sell_amount'] == 0
    assert result['transfers'] == []

def test_withdraw_fees(fee_market, params, now):
    with pytest.raises(NoFeesAccruedError):
        withdraw_fees(fee_market)

    buy(fee_market, "alice", 0, 10, 6 * ONE, now, params)
    transfer = withdraw_fees(fee_market)
    assert transfer['to_account'] == "fees.owner"
    assert transfer['amount'] == 53_000_000
    assert fee_market['fees_accrued'] == 0

    with pytest.raises(NoFeesAccruedError):
        withdraw_fees(fee_market)

def test_sell_amount_is_below_buy_cost_for_same_size(fee_market, params, now):
    buy(fee_market, "alice", 1, 20, 20 * ONE, now, params)
    assert calc_sell_price(fee_market, 1, 20, params) < calc_buy_price(fee_market, 1, 20, params)

@pytest.mark.parametrize("outcome_id", [0, 1, 3])
def test_trades_move_prices(params, now, outcome_id):
    market = open_new(params, now, n_outcomes=4)
    market['shares'] = [0.0, 15.0, 0.0, 30.0]
    market['accounts']["seed"] = [0, 15, 0, 30]

    before = price(market['liquidity'], market['shares'])
    buy(market, "alice", outcome_id, 20, 50 * ONE, now, params)
    after_buy = price(market['liquidity'], market['shares'])
    for i in range(4):
        if i == outcome_id:
            assert after_buy[i] > before[i]
        else:
            assert after_buy[i] < before[i]

    sell(market, "alice", outcome_id, 10, 0, now, params)
    after_sell = price(market['liquidity'], market['shares'])
    for i in range(4):
        if i == outcome_id:
            assert after_sell[i] < after_buy[i]
        else:
            assert after_sell[i] > after_buy[i]
