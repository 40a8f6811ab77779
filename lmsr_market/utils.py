import json
import time
from decimal import Decimal, getcontext
from typing import Any, Dict

import mpmath as mp
import numpy as np

from lmsr_market.errors import ArithmeticOverflowError

getcontext().prec = 50
mp.mp.dps = 50

# Largest amount any integer balance, fee or payout may reach.
U128_MAX = 2**128 - 1

NS_PER_SEC = 1_000_000_000

def get_current_ns() -> int:
    return time.time_ns()

def checked_add(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a + b
    if result < 0 or result > limit:
        raise ArithmeticOverflowError(f"{a} + {b}")
    return result

def checked_sub(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a - b
    if result < 0 or result > limit:
        raise ArithmeticOverflowError(f"{a} - {b}")
    return result

def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a * b
    if result < 0 or result > limit:
        raise ArithmeticOverflowError(f"{a} * {b}")
    return result

def checked_pow10(exponent: int, limit: int = U128_MAX) -> int:
    if exponent < 0:
        raise ArithmeticOverflowError(f"10 ** {exponent}")
    result = 10 ** exponent
    if result > limit:
        raise ArithmeticOverflowError(f"10 ** {exponent}")
    return result

def validate_account_id(account_id: str) -> None:
    if not isinstance(account_id, str) or not account_id:
        raise ValueError(f"Invalid account id: {account_id!r}")

def serialize_state(state: Dict[str, Any]) -> str:
    def default_handler(obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (np.float64, np.float32)):
            return float(obj)
        if isinstance(obj, np.integer):
            return int(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
    return json.dumps(state, default=default_handler)

def deserialize_state(json_str: str) -> Dict[str, Any]:
    return json.loads(json_str)
