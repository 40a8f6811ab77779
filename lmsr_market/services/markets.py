import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from lmsr_market.engine import ledger, market as market_ops, orders, resolutions, state as arena
from lmsr_market.engine.ledger import BalanceView
from lmsr_market.engine.market import CreateMarketArgs, Market
from lmsr_market.engine.orders import BuyResult, SellResult
from lmsr_market.engine.params import EngineParams, load_validated_params
from lmsr_market.engine.resolutions import RedeemResult
from lmsr_market.engine.state import ContractState, TransferRequest
from lmsr_market.engine.views import MarketView, calculate_prices, into_view
from lmsr_market.errors import MarketEngineError
from lmsr_market.utils import get_current_ns, validate_account_id
from .settlement import enqueue_transfers

logger = logging.getLogger(__name__)

_engine_params: Optional[EngineParams] = None

def get_engine_params() -> EngineParams:
    """Engine params from the environment, loaded once per process."""
    global _engine_params
    if _engine_params is None:
        _engine_params = load_validated_params()
    return _engine_params

def _resolve_params(params: Optional[EngineParams]) -> EngineParams:
    return params if params is not None else get_engine_params()

def _resolve_time(current_time: Optional[int]) -> int:
    return current_time if current_time is not None else get_current_ns()

def _apply(state: ContractState, market_id: int, action: str, mutate: Callable[[Market], Any], check_ledger: bool = False) -> Any:
    """
    Runs `mutate` against a private copy of the market and stores the copy back
    only if it succeeds. A rejected operation leaves the stored market untouched.
    """
    market = arena.get_market(state, market_id)
    try:
        result = mutate(market)
        if check_ledger:
            ledger.validate_ledger_consistency(market)
    except MarketEngineError as e:
        logger.warning(f"{action} rejected for market {market_id}: {e}")
        raise
    arena.replace_market(state, market)
    return result

# --- lifecycle ---

def create_market(state: ContractState, args: CreateMarketArgs, creator: str, params: Optional[EngineParams] = None) -> int:
    validate_account_id(creator)
    try:
        market_id = arena.create_market(state, args, creator, _resolve_params(params))
    except MarketEngineError as e:
        logger.warning(f"Market creation by {creator} rejected: {e}")
        raise
    logger.info(f"Created market {market_id} '{args['title']}' with {len(args['outcomes'])} outcomes")
    return market_id

def deposit_initial_collateral(state: ContractState, market_id: int, amount: int, params: Optional[EngineParams] = None) -> None:
    params = _resolve_params(params)
    _apply(state, market_id, "Initial deposit", lambda m: market_ops.deposit_collateral(m, amount, params))
    logger.info(f"Deposited {amount} initial collateral into market {market_id}")

def open_market(state: ContractState, market_id: int, current_time: Optional[int] = None, caller: Optional[str] = None) -> None:
    now = _resolve_time(current_time)
    _apply(state, market_id, "Open", lambda m: market_ops.open_market(m, now, caller))
    logger.info(f"Market {market_id} opened")

def pause_market(state: ContractState, market_id: int, caller: Optional[str] = None) -> None:
    _apply(state, market_id, "Pause", lambda m: market_ops.pause_market(m, caller))
    logger.info(f"Market {market_id} paused")

def resolve_market(
    state: ContractState,
    market_id: int,
    payouts: Sequence[int],
    params: Optional[EngineParams] = None,
    caller: Optional[str] = None,
) -> str:
    """Finalizes the market; returns the stage it ended in (RESOLVED or INVALID)."""
    params = _resolve_params(params)
    _apply(state, market_id, "Resolution", lambda m: resolutions.resolve(m, payouts, params, caller))
    stage = arena.peek_market(state, market_id)['stage']
    logger.info(f"Market {market_id} finalized as {stage} with payouts {list(payouts)}")
    return stage

# --- trading ---

def buy(
    state: ContractState,
    market_id: int,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    payment: int,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> int:
    """Buys shares and returns the change owed to the payer."""
    validate_account_id(account_id)
    params = _resolve_params(params)
    now = _resolve_time(current_time)
    result: BuyResult = _apply(
        state, market_id, "Buy",
        lambda m: orders.buy(m, account_id, outcome_id, num_shares, payment, now, params),
        check_ledger=True,
    )
    logger.info(
        f"{account_id} bought {num_shares} of outcome {outcome_id} in market {market_id} "
        f"for {result['cost']} (fee {result['fee']}, change {result['change']})"
    )
    return result['change']

def sell(
    state: ContractState,
    market_id: int,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    min_acceptable: int,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> SellResult:
    validate_account_id(account_id)
    params = _resolve_params(params)
    now = _resolve_time(current_time)
    result: SellResult = _apply(
        state, market_id, "Sell",
        lambda m: orders.sell(m, account_id, outcome_id, num_shares, min_acceptable, now, params),
        check_ledger=True,
    )
    enqueue_transfers(state, result['transfers'])
    logger.info(
        f"{account_id} sold {num_shares} of outcome {outcome_id} in market {market_id} "
        f"for {result['sell_amount']} (fee {result['fee']})"
    )
    return result

def credit(
    state: ContractState,
    market_id: int,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> None:
    """Adds shares without collateral changing hands (host-level adjustments)."""
    validate_account_id(account_id)
    params = _resolve_params(params)
    now = _resolve_time(current_time)
    _apply(
        state, market_id, "Credit",
        lambda m: ledger.credit(m, account_id, outcome_id, num_shares, now, params),
        check_ledger=True,
    )
    logger.info(f"Credited {num_shares} of outcome {outcome_id} to {account_id} in market {market_id}")

def debit(
    state: ContractState,
    market_id: int,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> None:
    validate_account_id(account_id)
    params = _resolve_params(params)
    now = _resolve_time(current_time)
    _apply(
        state, market_id, "Debit",
        lambda m: ledger.debit(m, account_id, outcome_id, num_shares, now, params),
        check_ledger=True,
    )
    logger.info(f"Debited {num_shares} of outcome {outcome_id} from {account_id} in market {market_id}")

def withdraw_fees(state: ContractState, market_id: int) -> TransferRequest:
    transfer = _apply(state, market_id, "Fee withdrawal", orders.withdraw_fees)
    queued = enqueue_transfers(state, [transfer])
    logger.info(f"Withdrew {transfer['amount']} fees from market {market_id} to {transfer['to_account']}")
    return queued[0]

def redeem(state: ContractState, market_id: int, account_id: str, params: Optional[EngineParams] = None) -> RedeemResult:
    validate_account_id(account_id)
    params = _resolve_params(params)
    result: RedeemResult = _apply(
        state, market_id, "Redemption",
        lambda m: resolutions.redeem(m, account_id, params),
        check_ledger=True,
    )
    enqueue_transfers(state, result['transfers'])
    logger.info(f"{account_id} redeemed {result['payout']} from market {market_id}")
    return result

# --- queries ---

def get_prices(state: ContractState, market_id: int) -> List[float]:
    return calculate_prices(arena.peek_market(state, market_id))

def outcome_balance(state: ContractState, market_id: int, account_id: str, outcome_id: int) -> Optional[int]:
    return ledger.outcome_balance(arena.peek_market(state, market_id), account_id, outcome_id)

def market_view(state: ContractState, market_id: int) -> MarketView:
    return into_view(arena.peek_market(state, market_id))

def get_all_markets(state: ContractState) -> List[MarketView]:
    return [into_view(m) for m in state['markets']]

def get_market_count(state: ContractState) -> int:
    return arena.get_market_count(state)

def get_user_balances(state: ContractState, account_id: str) -> List[BalanceView]:
    """Every outcome balance the account holds a record for, across all markets."""
    balances: List[BalanceView] = []
    for m in state['markets']:
        balances.extend(ledger.get_user_balances(m, account_id))
    return balances

def quote_buy(state: ContractState, market_id: int, outcome_id: int, num_shares: int, params: Optional[EngineParams] = None) -> Dict[str, int]:
    """Price of a buy right now, without executing it."""
    params = _resolve_params(params)
    m = arena.peek_market(state, market_id)
    base_price = orders.calc_price_without_fee(m, outcome_id, num_shares, orders.DIRECTION_BUY, params)
    fee = orders.calc_fee(m, base_price, params)
    return {'base_price': base_price, 'fee': fee, 'total': orders.calc_buy_price(m, outcome_id, num_shares, params)}

def quote_sell(state: ContractState, market_id: int, outcome_id: int, num_shares: int, params: Optional[EngineParams] = None) -> Dict[str, int]:
    params = _resolve_params(params)
    m = arena.peek_market(state, market_id)
    base_price = orders.calc_price_without_fee(m, outcome_id, num_shares, orders.DIRECTION_SELL, params)
    fee = orders.calc_fee(m, base_price, params)
    return {'base_price': base_price, 'fee': fee, 'total': orders.calc_sell_price(m, outcome_id, num_shares, params)}
