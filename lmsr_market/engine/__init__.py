from .market import (
    STAGE_INVALID,
    STAGE_OPEN,
    STAGE_PAUSED,
    STAGE_PENDING,
    STAGE_RESOLVED,
    CreateMarketArgs,
    Market,
    Outcome,
    OutcomeBalance,
    Transfer,
)
from .orders import BuyResult, SellResult, buy, sell, withdraw_fees
from .resolutions import RedeemResult, redeem, resolve
from .state import ContractState, TransferRequest, init_state
