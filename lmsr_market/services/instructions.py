"""
Message boundary for payments that arrive with an instruction attached.

A collateral transfer to the market host carries a JSON message naming what the
payment is for:

    {"type": "Buy", "market_id": 0, "outcome_id": 1, "num_shares": 10}
    {"type": "InitialDeposit", "market_id": 0}

Sells move no collateral in, so they arrive as plain calls:

    {"type": "Sell", "market_id": 0, "outcome_id": 1, "num_shares": 10, "min_acceptable": 0}

Messages are decoded once, checked field by field, and routed to the matching
service operation.
"""
import json
import logging
from typing import Any, Dict, Optional, Union

from typing_extensions import Literal, TypedDict

from lmsr_market.engine.params import EngineParams
from lmsr_market.engine.state import ContractState, peek_market
from lmsr_market.errors import InvalidInstructionError, WrongCollateralError
from . import markets

logger = logging.getLogger(__name__)

class BuyInstruction(TypedDict):
    type: Literal['Buy']
    market_id: int
    outcome_id: int
    num_shares: int

class SellInstruction(TypedDict):
    type: Literal['Sell']
    market_id: int
    outcome_id: int
    num_shares: int
    min_acceptable: int

class InitialDepositInstruction(TypedDict):
    type: Literal['InitialDeposit']
    market_id: int

Instruction = Union[BuyInstruction, SellInstruction, InitialDepositInstruction]

_FIELDS = {
    'Buy': ('market_id', 'outcome_id', 'num_shares'),
    'Sell': ('market_id', 'outcome_id', 'num_shares', 'min_acceptable'),
    'InitialDeposit': ('market_id',),
}

def decode_instruction(msg: str) -> Instruction:
    try:
        raw = json.loads(msg)
    except json.JSONDecodeError as e:
        raise InvalidInstructionError(f"message is not valid JSON: {e.msg}") from e
    if not isinstance(raw, dict):
        raise InvalidInstructionError("message must be a JSON object")

    kind = raw.get('type')
    if kind not in _FIELDS:
        raise InvalidInstructionError(f"unknown instruction type {kind!r}")

    decoded: Dict[str, Any] = {'type': kind}
    for field in _FIELDS[kind]:
        value = raw.get(field)
        # bool is an int subclass; reject it explicitly
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidInstructionError(f"{kind}.{field} must be an integer, got {value!r}")
        if value < 0:
            raise InvalidInstructionError(f"{kind}.{field} must be >=0, got {value}")
        decoded[field] = value
    return decoded  # type: ignore[return-value]

def on_transfer(
    state: ContractState,
    sender: str,
    token: str,
    amount: int,
    msg: str,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> int:
    """
    Handles collateral received with an instruction. Returns the part of
    `amount` that was not used and must be sent back to `sender`.
    """
    instruction = decode_instruction(msg)
    market_id = instruction['market_id']
    collateral = peek_market(state, market_id)['collateral_token']
    if token != collateral:
        logger.warning(f"Rejected {amount} {token} from {sender} for market {market_id}: wrong collateral")
        raise WrongCollateralError(token, collateral)

    if instruction['type'] == 'Buy':
        return markets.buy(
            state, market_id, sender, instruction['outcome_id'], instruction['num_shares'],
            amount, current_time=current_time, params=params,
        )
    if instruction['type'] == 'InitialDeposit':
        markets.deposit_initial_collateral(state, market_id, amount, params=params)
        return 0
    raise InvalidInstructionError(f"{instruction['type']} does not accept a payment")

def execute_instruction(
    state: ContractState,
    sender: str,
    msg: str,
    current_time: Optional[int] = None,
    params: Optional[EngineParams] = None,
) -> markets.SellResult:
    """Runs an instruction that moves no collateral in; only Sell qualifies."""
    instruction = decode_instruction(msg)
    if instruction['type'] != 'Sell':
        raise InvalidInstructionError(f"{instruction['type']} requires a collateral payment")
    return markets.sell(
        state, instruction['market_id'], sender, instruction['outcome_id'], instruction['num_shares'],
        instruction['min_acceptable'], current_time=current_time, params=params,
    )
