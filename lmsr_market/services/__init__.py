# lmsr_market/services/__init__.py

# Exposed operations over a ContractState. Every mutation works on a private copy
# of the market and stores it back only on success; collateral owed to accounts is
# queued in the settlement outbox after the store.
from .markets import (
    buy,
    create_market,
    credit,
    debit,
    deposit_initial_collateral,
    get_all_markets,
    get_market_count,
    get_prices,
    get_user_balances,
    market_view,
    open_market,
    outcome_balance,
    pause_market,
    quote_buy,
    quote_sell,
    redeem,
    resolve_market,
    sell,
    withdraw_fees,
)
from .settlement import (
    InMemorySettlementLedger,
    SettlementLedger,
    dispatch_pending,
    enqueue_transfers,
    pending_transfers,
    requeue_failed,
)
from .instructions import decode_instruction, execute_instruction, on_transfer
