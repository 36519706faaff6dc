"""Best-effort mirroring of attendance events to an external ledger.

The ledger is reached through a JSON relay that signs and submits contract
calls on behalf of the service. Nothing here is on the check-in commit path:
the database record is authoritative and ledger failures are only logged.
"""
import atexit
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, Optional, Set

import requests

from attendchain.utils.errors import LedgerError

logger = logging.getLogger(__name__)


class LedgerMirror:
    """Interface of the external attendance ledger."""

    enabled = True

    def publish_code(self, token: str, validity_minutes: int) -> Optional[str]:
        raise NotImplementedError

    def submit(self, token: str, account: Optional[str] = None) -> str:
        raise NotImplementedError

    def query_status(self, account: str) -> Dict:
        raise NotImplementedError


class NullLedgerMirror(LedgerMirror):
    """Used when no ledger relay is configured."""

    enabled = False

    def publish_code(self, token: str, validity_minutes: int) -> Optional[str]:
        return None

    def submit(self, token: str, account: Optional[str] = None) -> str:
        raise LedgerError('Ledger mirror is not configured')

    def query_status(self, account: str) -> Dict:
        return {'has_marked': False, 'count': 0}


class HttpLedgerMirror(LedgerMirror):
    """Ledger relay client over HTTP."""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['Content-Type'] = 'application/json'
        if api_key:
            self.session.headers['Authorization'] = f'Bearer {api_key}'

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise LedgerError(f'Ledger relay request failed: {e}') from e
        except ValueError as e:
            raise LedgerError('Ledger relay returned invalid JSON') from e

    def publish_code(self, token: str, validity_minutes: int) -> Optional[str]:
        payload = self._request('POST', '/codes', json={
            'code': token,
            'validity_minutes': validity_minutes
        })
        return payload.get('tx_hash')

    def submit(self, token: str, account: Optional[str] = None) -> str:
        payload = self._request('POST', '/attendance', json={
            'code': token,
            'account': account
        })
        tx_hash = payload.get('tx_hash')
        if not tx_hash:
            raise LedgerError('Ledger relay did not return a transaction hash')
        return tx_hash

    def query_status(self, account: str) -> Dict:
        payload = self._request('GET', f'/attendance/{account}')
        return {
            'has_marked': bool(payload.get('has_marked', False)),
            'count': int(payload.get('count', 0))
        }


class LedgerDispatcher:
    """Runs ledger submissions off the request thread.

    Registered as ``app.extensions['ledger']``. Submissions execute inside an
    app context so a confirmed transaction hash can be attached to its
    AttendanceRecord.
    """

    def __init__(self, app=None, mirror: Optional[LedgerMirror] = None):
        self.app = None
        self.mirror = mirror
        self.executor = None
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        if self.mirror is None:
            self.mirror = build_mirror(app.config)
        self.executor = ThreadPoolExecutor(
            max_workers=app.config.get('LEDGER_MAX_WORKERS', 4),
            thread_name_prefix='ledger'
        )
        app.extensions['ledger'] = self
        atexit.register(self.shutdown)

        if self.mirror.enabled:
            app.logger.info('Ledger mirror enabled: %s', type(self.mirror).__name__)

    @property
    def enabled(self) -> bool:
        return self.mirror.enabled

    def _track(self, future: Future) -> Future:
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._untrack)
        return future

    def _untrack(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def dispatch_check_in(self, record_id: str, token: str,
                          account: Optional[str] = None) -> Optional[Future]:
        """Mirror a check-in without blocking the caller."""
        if not self.enabled:
            logger.debug('Ledger disabled; check-in %s not mirrored', record_id)
            return None
        return self._track(self.executor.submit(self._mirror_check_in, record_id, token, account))

    def dispatch_code(self, token: str, validity_minutes: int) -> Optional[Future]:
        """Publish a newly issued code without blocking the caller."""
        if not self.enabled:
            return None
        return self._track(self.executor.submit(self._publish_code, token, validity_minutes))

    def query_status(self, account: str) -> Dict:
        return self.mirror.query_status(account)

    def _mirror_check_in(self, record_id: str, token: str, account: Optional[str]) -> Optional[str]:
        try:
            tx_hash = self.mirror.submit(token, account)
        except Exception:
            logger.error('Ledger submission failed for record %s', record_id, exc_info=True)
            return None

        with self.app.app_context():
            from attendchain import db
            from attendchain.models.attendance import AttendanceRecord

            try:
                record = db.session.get(AttendanceRecord, record_id)
                if record is None:
                    logger.warning('Ledger confirmed tx %s for missing record %s', tx_hash, record_id)
                    return tx_hash
                record.ledger_tx_hash = tx_hash
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.error('Could not attach ledger tx %s to record %s', tx_hash, record_id,
                             exc_info=True)
                return tx_hash
            finally:
                db.session.remove()

        logger.info('Check-in %s mirrored to ledger: %s', record_id, tx_hash)
        return tx_hash

    def _publish_code(self, token: str, validity_minutes: int) -> Optional[str]:
        try:
            return self.mirror.publish_code(token, validity_minutes)
        except Exception:
            logger.error('Publishing code to ledger failed', exc_info=True)
            return None

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until in-flight submissions finish; True if none remain."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=wait_for_pending)


def build_mirror(config) -> LedgerMirror:
    """Choose the ledger implementation from configuration."""
    url = config.get('LEDGER_RPC_URL')
    if not url:
        return NullLedgerMirror()
    return HttpLedgerMirror(
        url,
        api_key=config.get('LEDGER_API_KEY'),
        timeout=config.get('LEDGER_TIMEOUT_SECONDS', 10)
    )
