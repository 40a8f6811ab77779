import copy
from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict

from lmsr_market.config import EngineParams
from lmsr_market.errors import MarketNotFoundError
from lmsr_market.utils import deserialize_state as _loads, serialize_state as _dumps
from .market import CreateMarketArgs, Market, new_market

TRANSFER_PENDING = 'PENDING'
TRANSFER_SENDING = 'SENDING'  # claimed by a dispatcher, transfer in flight
TRANSFER_SENT = 'SENT'
TRANSFER_FAILED = 'FAILED'

class TransferRequest(TypedDict):
    transfer_id: int
    market_id: int
    token: str
    to_account: str
    amount: int
    memo: str
    status: str
    attempts: int
    error: Optional[str]

class ContractState(TypedDict):
    """
    Every market ever created, addressed by id (== position). Markets are never
    removed so holders can redeem long after resolution. The outbox keeps the
    collateral transfers owed to accounts, in commit order.
    """
    markets: List[Market]
    outbox: List[TransferRequest]
    next_transfer_id: int

def init_state() -> ContractState:
    return {'markets': [], 'outbox': [], 'next_transfer_id': 0}

def create_market(state: ContractState, args: CreateMarketArgs, creator: str, params: EngineParams) -> int:
    market_id = len(state['markets'])
    state['markets'].append(new_market(market_id, args, creator, params))
    return market_id

def get_market_count(state: ContractState) -> int:
    return len(state['markets'])

def get_market(state: ContractState, market_id: int) -> Market:
    """
    Returns a private copy of the market. Mutate the copy and hand it to
    replace_market(); a failed operation simply drops it.
    """
    if not (0 <= market_id < len(state['markets'])):
        raise MarketNotFoundError(market_id)
    return copy.deepcopy(state['markets'][market_id])

def peek_market(state: ContractState, market_id: int) -> Market:
    """Read-only access without the copy; callers must not mutate the result."""
    if not (0 <= market_id < len(state['markets'])):
        raise MarketNotFoundError(market_id)
    return state['markets'][market_id]

def replace_market(state: ContractState, market: Market) -> None:
    if not (0 <= market['id'] < len(state['markets'])):
        raise MarketNotFoundError(market['id'])
    state['markets'][market['id']] = market

def serialize_state(state: ContractState) -> str:
    """JSON snapshot of the whole arena, outbox included."""
    return _dumps(state)

def deserialize_state(json_str: str) -> ContractState:
    raw: Dict[str, Any] = _loads(json_str)
    for key in ('markets', 'outbox', 'next_transfer_id'):
        if key not in raw:
            raise ValueError(f"Missing {key} in contract state")
    for i, market in enumerate(raw['markets']):
        if market['id'] != i:
            raise ValueError(f"Market at position {i} has id {market['id']}")
    return raw
