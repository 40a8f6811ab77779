import math

# Import the complete EngineParams from config so engine callers share one definition
from lmsr_market.config import EngineParams, load_engine_params

def validate_params(params: EngineParams) -> None:
    if params['minimum_deposit'] <= 0:
        raise ValueError("minimum_deposit must be >0")
    liquidity = params['default_liquidity']
    if not math.isfinite(liquidity) or liquidity <= 0:
        raise ValueError("default_liquidity must be a finite value >0")
    if params['rounding_decimals'] < 0:
        raise ValueError("rounding_decimals must be >=0")
    if params['max_balance'] <= 0:
        raise ValueError("max_balance must be >0")
    if params['settlement_interval_ms'] <= 0:
        raise ValueError("settlement_interval_ms must be >0")

def load_validated_params() -> EngineParams:
    params = load_engine_params()
    validate_params(params)
    return params
