"""
Settlement outbox: collateral transfers owed by committed market mutations.

Engine operations only describe the payments they owe. The service layer appends
them here after the market has been stored, and a dispatcher (see
lmsr_market.runner.settlement_runner) hands each one to the settlement ledger exactly
once. A transfer that fails is marked FAILED and left for the host to reconcile;
the market mutation that produced it is never rolled back.
"""
import logging
import threading
from typing import Any, Dict, List, Protocol, Sequence

from lmsr_market.engine.market import Transfer
from lmsr_market.engine.state import (
    TRANSFER_FAILED,
    TRANSFER_PENDING,
    TRANSFER_SENDING,
    TRANSFER_SENT,
    ContractState,
    TransferRequest,
)

logger = logging.getLogger(__name__)

# The dispatcher thread and the host both touch the outbox.
_outbox_lock = threading.RLock()

class SettlementLedger(Protocol):
    def transfer(self, token: str, to_account: str, amount: int, memo: str) -> None:
        """Moves `amount` of `token` to `to_account`; raises on failure."""
        ...

class InMemorySettlementLedger:
    """Settlement ledger that records transfers in memory, for local runs."""

    def __init__(self) -> None:
        self.transfers: List[Dict[str, Any]] = []

    def transfer(self, token: str, to_account: str, amount: int, memo: str) -> None:
        if amount <= 0:
            raise ValueError(f"Invalid transfer amount: {amount}")
        self.transfers.append({'token': token, 'to_account': to_account, 'amount': amount, 'memo': memo})

    def total_paid(self, to_account: str) -> int:
        return sum(t['amount'] for t in self.transfers if t['to_account'] == to_account)

def enqueue_transfers(state: ContractState, transfers: Sequence[Transfer]) -> List[TransferRequest]:
    queued = []
    with _outbox_lock:
        for transfer in transfers:
            request = TransferRequest(
                transfer_id=state['next_transfer_id'],
                market_id=transfer['market_id'],
                token=transfer['token'],
                to_account=transfer['to_account'],
                amount=transfer['amount'],
                memo=transfer['memo'],
                status=TRANSFER_PENDING,
                attempts=0,
                error=None,
            )
            state['next_transfer_id'] += 1
            state['outbox'].append(request)
            queued.append(request)
            logger.info(f"Queued transfer {request['transfer_id']}: {request['amount']} {request['token']} to {request['to_account']}")
    return queued

def pending_transfers(state: ContractState) -> List[TransferRequest]:
    with _outbox_lock:
        return [dict(r) for r in state['outbox'] if r['status'] == TRANSFER_PENDING]

def dispatch_pending(state: ContractState, ledger: SettlementLedger) -> Dict[str, int]:
    """
    Sends every PENDING request once. Requests are claimed (SENDING) under the
    outbox lock before the ledger is called, so concurrent dispatchers never
    pick up the same request and SENT requests are never sent again.
    """
    with _outbox_lock:
        batch = [r for r in state['outbox'] if r['status'] == TRANSFER_PENDING]
        for request in batch:
            request['status'] = TRANSFER_SENDING

    sent = 0
    failed = 0
    for request in batch:
        try:
            ledger.transfer(request['token'], request['to_account'], request['amount'], request['memo'])
        except Exception as e:
            with _outbox_lock:
                request['attempts'] += 1
                request['status'] = TRANSFER_FAILED
                request['error'] = str(e)
            failed += 1
            logger.error(f"Transfer {request['transfer_id']} to {request['to_account']} failed: {e}")
            continue
        with _outbox_lock:
            request['attempts'] += 1
            request['status'] = TRANSFER_SENT
            request['error'] = None
        sent += 1
        logger.debug(f"Transfer {request['transfer_id']} sent: {request['memo']}")

    if batch:
        logger.info(f"Dispatched {len(batch)} transfers - sent: {sent}, failed: {failed}")
    return {'sent': sent, 'failed': failed}

def requeue_failed(state: ContractState) -> int:
    """Host-driven retry: moves FAILED requests back to PENDING."""
    requeued = 0
    with _outbox_lock:
        for request in state['outbox']:
            if request['status'] == TRANSFER_FAILED:
                request['status'] = TRANSFER_PENDING
                requeued += 1
    if requeued:
        logger.warning(f"Requeued {requeued} failed transfers")
    return requeued

def get_outbox_summary(state: ContractState) -> Dict[str, int]:
    with _outbox_lock:
        summary = {TRANSFER_PENDING: 0, TRANSFER_SENDING: 0, TRANSFER_SENT: 0, TRANSFER_FAILED: 0}
        for request in state['outbox']:
            summary[request['status']] += 1
        return summary
