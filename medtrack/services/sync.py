"""
Local-first synchronization with the remote store

Reads are answered from the local store; a background refresh then lets
the remote copy replace local data for what it fetched. Mutations are
applied locally first and queued in an ordered outbox that is sent in the
background. A push that keeps failing stays queued and is replayed before
the next refresh, and records with queued pushes are never overwritten by
a refresh. Remote failures are logged and never undo or block local work.
"""
import logging
import threading
import time
from collections import deque, namedtuple
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy.exc import SQLAlchemyError

from medtrack.errors import RemoteSyncError

logger = logging.getLogger(__name__)

# Outbox keys
SCHEDULE = 'schedule'
OCCURRENCE = 'occurrence'
ALL = '*'

QueuedPush = namedtuple('QueuedPush', ['key', 'description', 'operation', 'args'])


class SyncTicket:
    """Cancellation handle tied to the view or request that asked for a refresh"""

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()


def snapshot(entity):
    """Detached copy that is safe to hand to another thread"""
    return type(entity).from_dict(entity.to_dict())


class SyncService:
    def __init__(self, local, remote=None, app=None, executor=None, retries=2, retry_delay=1.0, workers=2):
        self.local = local
        self.remote = remote
        self.app = app
        self.retries = retries
        self.retry_delay = retry_delay
        self.executor = executor
        if self.executor is None and remote is not None:
            self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='medtrack-sync')
        self._outbox = deque()
        self._outbox_lock = threading.Lock()
        # Held while the outbox is sent and while a refresh runs, so remote
        # traffic happens one task at a time in submission order
        self._writer_lock = threading.Lock()

    @property
    def enabled(self):
        return self.remote is not None

    def shutdown(self, wait=True):
        if self.executor is not None:
            self.executor.shutdown(wait=wait)

    # Pushes

    def push(self, description, operation, *args, key=None):
        """Queue a remote mutation and send the outbox in the background.

        The returned future resolves to True once the outbox is empty, or
        False when a push ran out of retries and is still queued.
        """
        if not self.enabled:
            return None
        with self._outbox_lock:
            self._outbox.append(QueuedPush(key, description, operation, args))
        return self.executor.submit(self.flush)

    def pending_keys(self):
        """Keys of pushes that have not reached the remote store yet"""
        with self._outbox_lock:
            return {item.key for item in self._outbox if item.key is not None}

    def _pending_ids(self, kind):
        return {identifier for pending_kind, identifier in self.pending_keys() if pending_kind == kind}

    def flush(self):
        with self._writer_lock:
            return self._send_outbox()

    def _send_outbox(self):
        while True:
            with self._outbox_lock:
                if not self._outbox:
                    return True
                item = self._outbox[0]
            if not self._push_with_retry(item):
                with self._outbox_lock:
                    waiting = len(self._outbox)
                logger.error('Remote %s keeps failing; %d push(es) stay queued for the next sync',
                             item.description, waiting)
                return False
            with self._outbox_lock:
                self._outbox.popleft()

    def _push_with_retry(self, item):
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                item.operation(*item.args)
                return True
            except RemoteSyncError as e:
                if not e.retryable:
                    logger.error('Remote rejected %s, dropping it: %s', item.description, e)
                    return True
                logger.warning('Remote %s failed (attempt %d/%d): %s', item.description, attempt, attempts, e)
                if attempt < attempts:
                    time.sleep(self.retry_delay * attempt)
        return False

    def push_schedule(self, schedule, created=False):
        if not self.enabled:
            return None
        key = (SCHEDULE, schedule.id)
        if created:
            return self.push(f'add schedule {schedule.id}', self.remote.add_schedule, snapshot(schedule), key=key)
        return self.push(f'update schedule {schedule.id}', self.remote.update_schedule, snapshot(schedule), key=key)

    def push_schedule_deletion(self, schedule_id):
        if not self.enabled:
            return None
        return self.push(f'delete schedule {schedule_id}', self.remote.delete_schedule, schedule_id,
                         key=(SCHEDULE, schedule_id))

    def push_occurrence(self, occurrence):
        if not self.enabled:
            return None
        return self.push(f'update occurrence {occurrence.id}', self.remote.put_occurrence, snapshot(occurrence),
                         key=(OCCURRENCE, occurrence.id))

    def push_occurrence_deletion(self, occurrence_id):
        if not self.enabled:
            return None
        return self.push(f'delete occurrence {occurrence_id}', self.remote.delete_occurrence, occurrence_id,
                         key=(OCCURRENCE, occurrence_id))

    def push_reset(self):
        if not self.enabled:
            return None
        return self.push('reset occurrences', self.remote.delete_all_occurrences, key=(OCCURRENCE, ALL))

    # Refreshes

    def refresh_schedules(self, ticket=None):
        if not self.enabled:
            return None
        return self.executor.submit(
            self._refresh, 'schedules', self.remote.get_schedules, self._replace_schedules, ticket
        )

    def refresh_occurrences(self, start, end, ticket=None):
        if not self.enabled:
            return None
        return self.executor.submit(
            self._refresh,
            f'occurrences {start}..{end}',
            lambda: self.remote.get_occurrences(start, end),
            lambda occurrences: self._replace_occurrences(start, end, occurrences),
            ticket,
        )

    def _replace_schedules(self, schedules):
        self.local.replace_schedules(schedules, protected=self._pending_ids(SCHEDULE))

    def _replace_occurrences(self, start, end, occurrences):
        # An empty range means the remote store has not seen it yet
        if not occurrences:
            return
        protected = self._pending_ids(OCCURRENCE)
        if ALL in protected:
            logger.info('Occurrence reset not yet on the remote, keeping local %s..%s', start, end)
            return
        self.local.replace_occurrences(start, end, occurrences, protected=protected)

    def _refresh(self, description, fetch, apply, ticket):
        with self._writer_lock:
            # Local changes go out first so the fetch already reflects them
            self._send_outbox()
            try:
                fetched = fetch()
            except RemoteSyncError as e:
                logger.warning('Could not refresh %s from remote, keeping local data: %s', description, e)
                return False

            if ticket is not None and ticket.cancelled:
                logger.debug('Discarding remote %s for a cancelled view', description)
                return False

            if self.app is None:
                return self._apply(description, apply, fetched)
            with self.app.app_context():
                return self._apply(description, apply, fetched)

    def _apply(self, description, apply, fetched):
        try:
            apply(fetched)
        except SQLAlchemyError:
            self.local.rollback()
            logger.exception('Failed to store remote %s locally', description)
            return False
        logger.info('Refreshed %s from remote (%d records)', description, len(fetched))
        return True
