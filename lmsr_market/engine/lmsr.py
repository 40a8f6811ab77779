"""LMSR (Logarithmic Market Scoring Rule) pricing for N outcomes.

Cost function: C(q) = b * ln(sum_i exp(q_i / b))
Marginal price p_i = exp(q_i / b) / sum_j exp(q_j / b)

Everything here is pure double-precision math evaluated in one fixed order:
scale by b, shift by the largest scaled quantity, fold the shifted
exponentials left to right. Replicas given the same inputs must agree
bit for bit, so keep the operation order intact when editing.
"""

import math
from typing import List, Sequence, Tuple

import mpmath as mp


def fund(liquidity: float, n: int) -> float:
    """Worst-case market maker loss, i.e. the funding needed for n outcomes at liquidity b."""
    if n < 2:
        raise ValueError("n must be >=2")
    return liquidity * math.log(n)


def liquidity(fund: float, n: int) -> float:
    """Inverse of fund(): the liquidity parameter a given funding supports."""
    if n < 2:
        raise ValueError("n must be >=2")
    return fund / math.log(n)


def _coefficients(liquidity: float, shares: Sequence[float]) -> Tuple[List[float], float]:
    if liquidity <= 0:
        raise ValueError("liquidity must be >0")
    if not shares:
        raise ValueError("shares must be non-empty")
    scaled = [q / liquidity for q in shares]
    return scaled, max(scaled)


def _shift_exp_sum(shift: float, scaled: Sequence[float]) -> float:
    # Plain left fold; builtin sum() uses compensated summation on 3.12+.
    total = 0.0
    for v in scaled:
        total += math.exp(v - shift)
    return total


def cost(liquidity: float, shares: Sequence[float]) -> float:
    scaled, m = _coefficients(liquidity, shares)
    total = _shift_exp_sum(m, scaled)
    return liquidity * (math.log(total) + m)


def price(liquidity: float, shares: Sequence[float]) -> List[float]:
    """Softmax of q/b: the marginal price (implied probability) of every outcome."""
    scaled, m = _coefficients(liquidity, shares)
    log_total = math.log(_shift_exp_sum(m, scaled))
    return [math.exp(v - m - log_total) for v in scaled]


def estimate_cost_delta(liquidity: float, shares: Sequence[float], index: int, amount: float) -> float:
    """
    Signed collateral cost of moving outcome `index` by `amount` shares.
    Positive amount = buy (cost to the trader), negative = sell (proceeds, returned negative).
    """
    after = list(shares)
    after[index] += amount
    return cost(liquidity, after) - cost(liquidity, shares)


def inverse_delta(liquidity: float, shares: Sequence[float], index: int, paid_amount: float) -> float:
    """
    Inverse of estimate_cost_delta: the share delta that a signed payment buys (or a
    signed proceeds amount sells) on outcome `index`.

    delta = b * ln((exp(paid / b) - 1) / p_index + 1)
    """
    scaled, m = _coefficients(liquidity, shares)
    total = _shift_exp_sum(m, scaled)
    p = math.exp(scaled[index] - m - math.log(total))
    ratio = math.expm1(paid_amount / liquidity) / p
    if ratio <= -1.0:
        raise ValueError(f"paid_amount {paid_amount} exceeds what outcome {index} can return")
    return liquidity * math.log1p(ratio)


def reference_cost(liquidity: float, shares: Sequence[float], dps: int = 50) -> float:
    """High-precision (mpmath) evaluation of C(q), for auditing the float path."""
    if liquidity <= 0:
        raise ValueError("liquidity must be >0")
    if not shares:
        raise ValueError("shares must be non-empty")
    with mp.workdps(dps):
        b = mp.mpf(liquidity)
        total = mp.fsum(mp.exp(mp.mpf(q) / b) for q in shares)
        return float(b * mp.log(total))
