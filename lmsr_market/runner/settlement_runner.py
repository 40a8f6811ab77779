import time
import threading
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from lmsr_market.engine.params import EngineParams
from lmsr_market.engine.state import ContractState
from lmsr_market.services.markets import get_engine_params
from lmsr_market.services.settlement import SettlementLedger, dispatch_pending, get_outbox_summary

# Global thread management
_settlement_thread: Optional[threading.Thread] = None
_settlement_active = False
_settlement_stop = threading.Event()
_settlement_stats = {
    'last_dispatch_time': None,
    'total_dispatches': 0,
    'total_sent': 0,
    'total_failed': 0,
    'last_error': None,
    'error_count': 0,
    'thread_restarts': 0,
}

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def run_dispatch(state: ContractState, ledger: SettlementLedger) -> Dict[str, int]:
    """Execute a single dispatch pass over the outbox and record it in the stats."""
    global _settlement_stats

    result = dispatch_pending(state, ledger)
    _settlement_stats['last_dispatch_time'] = datetime.now()
    _settlement_stats['total_dispatches'] += 1
    _settlement_stats['total_sent'] += result['sent']
    _settlement_stats['total_failed'] += result['failed']
    if result['failed']:
        summary = get_outbox_summary(state)
        logger.warning(f"{summary['FAILED']} transfers in FAILED state awaiting reconciliation")
    return result

def start_settlement_runner(state: ContractState, ledger: SettlementLedger, params: Optional[EngineParams] = None) -> None:
    """Start the background dispatcher that hands queued transfers to the ledger."""
    global _settlement_thread, _settlement_active, _settlement_stop, _settlement_stats

    # Stop existing runner if running, and wait for its loop to exit even if it
    # already cleared the active flag
    if _settlement_active or (_settlement_thread is not None and _settlement_thread.is_alive()):
        logger.info("Stopping existing settlement runner before starting new one")
        stop_settlement_runner(wait=True)
        if _settlement_thread is not None and _settlement_thread.is_alive():
            raise RuntimeError("Previous settlement runner thread did not stop")

    params = params if params is not None else get_engine_params()
    logging.getLogger('lmsr_market').setLevel(params['log_level'])
    interval_ms = params['settlement_interval_ms']
    interval_sec = interval_ms / 1000.0

    logger.info(f"Starting settlement runner with {interval_ms}ms interval")
    # Each runner owns its stop event; a lingering loop never sees it cleared
    stop_event = threading.Event()
    _settlement_stop = stop_event
    _settlement_active = True

    def runner_loop():
        """Main dispatch loop with error recovery."""
        global _settlement_active

        consecutive_errors = 0
        max_consecutive_errors = 10

        logger.info("Settlement runner thread started")

        while not stop_event.is_set():
            try:
                run_dispatch(state, ledger)
                consecutive_errors = 0
                stop_event.wait(interval_sec)

            except Exception as e:
                consecutive_errors += 1
                logger.error(f"Settlement runner error #{consecutive_errors}: {e}")
                _settlement_stats['error_count'] += 1
                _settlement_stats['last_error'] = str(e)

                if consecutive_errors >= max_consecutive_errors:
                    logger.error(f"Too many consecutive errors ({consecutive_errors}), stopping settlement runner")
                    break

                # Exponential backoff for errors
                error_sleep = min(30, 2 ** consecutive_errors)
                logger.info(f"Sleeping {error_sleep}s before retry")
                stop_event.wait(error_sleep)

        if _settlement_stop is stop_event:
            _settlement_active = False
        logger.info("Settlement runner thread stopped")

    _settlement_thread = threading.Thread(
        target=runner_loop,
        daemon=True,
        name="SettlementRunner"
    )

    _settlement_thread.start()
    _settlement_stats['thread_restarts'] += 1

    logger.info(f"Settlement runner started (thread ID: {_settlement_thread.ident})")

    # Verify thread started
    time.sleep(0.1)
    if not _settlement_thread.is_alive() and not stop_event.is_set():
        logger.error("Failed to start settlement runner thread!")
        raise RuntimeError("Settlement runner thread failed to start")

def stop_settlement_runner(wait: bool = False) -> None:
    """Stop the settlement runner thread; optionally wait for it to exit."""
    global _settlement_active
    logger.info("Stopping settlement runner...")
    _settlement_stop.set()
    _settlement_active = False
    if wait and _settlement_thread is not None:
        _settlement_thread.join(timeout=5)

def get_settlement_runner_stats() -> Dict[str, Any]:
    """Get current settlement runner statistics and health status."""
    stats = _settlement_stats.copy()
    stats['is_active'] = _settlement_active
    stats['thread_alive'] = _settlement_thread.is_alive() if _settlement_thread else False
    stats['thread_id'] = _settlement_thread.ident if _settlement_thread else None
    return stats

def is_settlement_runner_healthy(max_idle_sec: float = 30.0) -> bool:
    """Check the runner is alive and has dispatched recently."""
    if not _settlement_active:
        return False

    if not _settlement_thread or not _settlement_thread.is_alive():
        return False

    if _settlement_stats['last_dispatch_time']:
        idle = (datetime.now() - _settlement_stats['last_dispatch_time']).total_seconds()
        if idle > max_idle_sec:
            logger.warning(f"Settlement runner unhealthy: {idle:.1f}s since last dispatch")
            return False

    return True

def restart_settlement_runner_if_needed(state: ContractState, ledger: SettlementLedger, params: Optional[EngineParams] = None) -> bool:
    """Restart the settlement runner if it is not healthy."""
    if not is_settlement_runner_healthy():
        logger.warning("Settlement runner is unhealthy, restarting...")
        stop_settlement_runner(wait=True)
        start_settlement_runner(state, ledger, params)
        return True
    return False
