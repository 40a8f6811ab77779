import os
from typing import Optional

from dotenv import load_dotenv
from typing_extensions import TypedDict

from lmsr_market.utils import U128_MAX

# Environment overrides understood by load_engine_params().
ENV_VARS = {
    'minimum_deposit': 'LMSR_MINIMUM_DEPOSIT',
    'default_liquidity': 'LMSR_DEFAULT_LIQUIDITY',
    'rounding_decimals': 'LMSR_ROUNDING_DECIMALS',
    'max_balance': 'LMSR_MAX_BALANCE',
    'settlement_interval_ms': 'LMSR_SETTLEMENT_INTERVAL_MS',
    'log_level': 'LMSR_LOG_LEVEL',
}

def load_env() -> dict[str, Optional[str]]:
    # Local development keeps overrides in .env; deployed hosts set them directly.
    load_dotenv()

    env_vars = {}
    for key, var in ENV_VARS.items():
        value = os.getenv(var)
        if value is not None:
            env_vars[key] = value
    return env_vars

class EngineParams(TypedDict):
    minimum_deposit: int  # whole collateral units, scaled by collateral_decimals per market
    default_liquidity: float
    rounding_decimals: int
    max_balance: int
    settlement_interval_ms: int
    log_level: str

def get_default_engine_params() -> EngineParams:
    return EngineParams(
        minimum_deposit=100,
        default_liquidity=50.0,
        rounding_decimals=1,
        max_balance=U128_MAX,
        settlement_interval_ms=1000,
        log_level='INFO',
    )

def load_engine_params() -> EngineParams:
    params = get_default_engine_params()
    overrides = load_env()
    for key, raw in overrides.items():
        if key == 'default_liquidity':
            params[key] = float(raw)
        elif key == 'log_level':
            params[key] = raw.upper()
        else:
            params[key] = int(raw)
    return params
