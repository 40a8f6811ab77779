"""Error kinds raised by the market core.

Every error aborts the whole operation; nothing is mutated. Codes:
  1xxx: market lifecycle / validation
  2xxx: trading
  3xxx: resolution / redemption
  9xxx: arithmetic / system
"""


class MarketEngineError(ValueError):
    """Base error for the market core."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


# --- 1xxx: lifecycle / validation ---

class ValidationError(MarketEngineError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Market validation failed: {detail}")


class StageError(MarketEngineError):
    def __init__(self, market_id: int, stage: str, detail: str = "") -> None:
        message = f"Operation not allowed for market {market_id} in stage {stage}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(1002, message)


class MarketNotFoundError(MarketEngineError):
    def __init__(self, market_id: int) -> None:
        super().__init__(1003, f"Market not found: {market_id}")


class UnauthorizedError(MarketEngineError):
    def __init__(self, account_id: str, role: str) -> None:
        super().__init__(1004, f"Account {account_id} is not the market {role}")


# --- 2xxx: trading ---

class InvalidOutcomeError(MarketEngineError):
    def __init__(self, outcome_id: int, n_outcomes: int) -> None:
        super().__init__(2001, f"Invalid outcome {outcome_id} for market with {n_outcomes} outcomes")


class InvalidOrderError(MarketEngineError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Invalid order: {detail}")


class InsufficientPaymentError(MarketEngineError):
    def __init__(self, required: int, provided: int) -> None:
        self.required = required
        self.provided = provided
        super().__init__(2003, f"Insufficient payment: required {required}, provided {provided}")


class SlippageExceededError(MarketEngineError):
    def __init__(self, sell_amount: int, min_acceptable: int) -> None:
        self.sell_amount = sell_amount
        self.min_acceptable = min_acceptable
        super().__init__(2004, f"Not executing sell due to slippage: proceeds {sell_amount} < minimum {min_acceptable}")


class InsufficientBalanceError(MarketEngineError):
    def __init__(self, account_id: str, outcome_id: int, required: int, available: int) -> None:
        super().__init__(
            2005,
            f"Insufficient balance for {account_id} on outcome {outcome_id}: required {required}, available {available}",
        )


class WrongCollateralError(MarketEngineError):
    def __init__(self, token_id: str, expected: str) -> None:
        super().__init__(2006, f"Token {token_id} is not the market collateral {expected}")


class InvalidInstructionError(MarketEngineError):
    def __init__(self, detail: str) -> None:
        super().__init__(2007, f"Invalid instruction: {detail}")


# --- 3xxx: resolution / redemption ---

class InvalidPayoutVectorError(MarketEngineError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, f"Invalid payout vector: {detail}")


class NotFinalizedError(MarketEngineError):
    def __init__(self, market_id: int, stage: str) -> None:
        super().__init__(3002, f"Market {market_id} is not finalized (stage {stage})")


class ZeroPayoutError(MarketEngineError):
    def __init__(self, account_id: str) -> None:
        super().__init__(3003, f"Nothing to redeem for {account_id}")


class NoFeesAccruedError(MarketEngineError):
    def __init__(self, market_id: int) -> None:
        super().__init__(3004, f"No fees accrued for market {market_id}")


# --- 9xxx: arithmetic / system ---

class ArithmeticOverflowError(MarketEngineError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Arithmetic overflow: {detail}")
