import logging
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import Field, ValidationError

from app.core.exceptions import PersistenceUnavailable
from app.models.verdict import CamelModel, StoredFactCheck, VerdictRecord
from client.api_client import ApiError, VeritasApiClient
from client.local_cache import LocalCache

logger = logging.getLogger(__name__)

LOCAL_OWNER = "local"
LOCAL_ID_PREFIX = "local-"
HISTORY_LIMIT = 100


def new_local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(entry_id: str) -> bool:
    return entry_id.startswith(LOCAL_ID_PREFIX)


class HistoryEntry(CamelModel):
    id: str = Field(..., min_length=1)
    owner_id: str = LOCAL_OWNER
    record: VerdictRecord
    saved_at: datetime

    @property
    def synced(self) -> bool:
        return not is_local_id(self.id)


class OutboxOp(str, Enum):
    SAVE = "save"
    DELETE = "delete"
    CLEAR = "clear"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class OutboxItem(CamelModel):
    """A remote mutation that still has to reach the server."""
    op: OutboxOp
    entry_id: Optional[str] = None
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    queued_at: datetime = Field(default_factory=datetime.utcnow)


class ReconciliationStore:
    """
    Client-side verdict history that stays usable while the server is not.

    Every mutation is applied locally at once and queued in an outbox that
    is written to disk with the history. The outbox is tried inline, and
    anything that fails stays queued until reconcile() gets it through.
    Entries that never reached the server keep a "local-" id, which is
    swapped for the server id once their save is confirmed.

    All operations hold one re-entrant lock, shared with the background
    reconciler thread.
    """

    def __init__(
        self,
        api: VeritasApiClient,
        cache: LocalCache,
        owner_id: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.api = api
        self.cache = cache
        self.owner_id = owner_id
        self.clock = clock
        self.history_limit = history_limit

        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._entries: List[HistoryEntry] = []
        self._outbox: List[OutboxItem] = []
        # local id -> server id, for entries whose save went through
        self._resolved_ids: Dict[str, str] = {}
        self._load()

    # ----- state -----

    @property
    def history(self) -> List[HistoryEntry]:
        """Entries, newest first."""
        with self._lock:
            return list(self._entries)

    @property
    def outbox(self) -> List[OutboxItem]:
        """Mutations not yet confirmed by the server, oldest first."""
        with self._lock:
            return [item.model_copy() for item in self._outbox]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            return self._find(entry_id)

    def _find(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def _load(self):
        data = self.cache.load()
        for raw in data["entries"]:
            try:
                self._entries.append(HistoryEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning("Dropping unreadable history entry: %s", e)
        for raw in data["outbox"]:
            try:
                self._outbox.append(OutboxItem.model_validate(raw))
            except ValidationError as e:
                logger.warning("Dropping unreadable outbox item: %s", e)
        self._sort()
        logger.info("Loaded %d history entries, %d queued changes", len(self._entries), len(self._outbox))

    def _sort(self):
        self._entries.sort(key=lambda entry: entry.saved_at, reverse=True)
        for dropped in self._entries[self.history_limit:]:
            self._drop_queued_save(dropped.id)
        del self._entries[self.history_limit:]

    def _persist(self):
        self._outbox = [item for item in self._outbox if item.status != OutboxStatus.CONFIRMED]
        self.cache.save({
            "entries": [entry.model_dump(mode="json", by_alias=True) for entry in self._entries],
            "outbox": [item.model_dump(mode="json", by_alias=True) for item in self._outbox],
        })

    def _drop_queued_save(self, entry_id: str):
        self._outbox = [
            item for item in self._outbox
            if not (item.op == OutboxOp.SAVE and item.entry_id == entry_id)
        ]

    # ----- mutations -----

    def add(self, record: VerdictRecord) -> HistoryEntry:
        """
        Add a verdict to the history.

        The server save is attempted first; if it fails the entry is kept
        under a local id and the save stays queued.

        Args:
            record: Completed verification

        Returns:
            HistoryEntry as it now appears in the history
        """
        with self._lock:
            entry = HistoryEntry(
                id=new_local_id(),
                owner_id=self.owner_id or LOCAL_OWNER,
                record=record,
                saved_at=self.clock(),
            )
            self._entries.append(entry)
            item = OutboxItem(op=OutboxOp.SAVE, entry_id=entry.id, queued_at=self.clock())
            self._outbox.append(item)

            self._attempt(item)
            self._sort()
            self._persist()
            return self._find(self._resolved_ids.get(entry.id, entry.id)) or entry

    def remove(self, entry_id: str) -> bool:
        """
        Remove one entry. The local history is always updated; the server
        delete is best effort and retried later if it fails.

        Returns:
            False if no such entry exists
        """
        with self._lock:
            entry = self._find(entry_id)
            if entry is None:
                return False
            self._entries.remove(entry)

            if not entry.synced:
                # Never reached the server: forgetting the queued save is enough
                self._drop_queued_save(entry_id)
            else:
                item = OutboxItem(op=OutboxOp.DELETE, entry_id=entry_id, queued_at=self.clock())
                self._outbox.append(item)
                self._attempt(item)

            self._persist()
            return True

    def clear(self):
        """Remove every entry, locally at once and on the server best effort."""
        with self._lock:
            self._entries = []
            # A clear supersedes everything queued before it
            self._outbox = []
            if self.api.authenticated:
                item = OutboxItem(op=OutboxOp.CLEAR, queued_at=self.clock())
                self._outbox.append(item)
                self._attempt(item)
            self._persist()

    # ----- reconciliation -----

    def reconcile(self) -> int:
        """
        Retry queued mutations in order.

        Returns:
            Number of mutations confirmed by the server in this pass
        """
        with self._lock:
            if not self._outbox:
                return 0

            confirmed = 0
            for item in list(self._outbox):
                if item.status == OutboxStatus.CONFIRMED:
                    continue
                if not self._attempt(item):
                    # Keep FIFO order: later mutations may depend on this one
                    break
                confirmed += 1

            self._sort()
            self._persist()
            if confirmed:
                logger.info("Reconciled %d queued changes, %d left", confirmed, len(self._outbox))
            return confirmed

    def _attempt(self, item: OutboxItem) -> bool:
        if not self.api.authenticated:
            item.status = OutboxStatus.PENDING
            return False

        item.attempts += 1
        try:
            self._apply_remote(item)
        except PersistenceUnavailable as e:
            item.status = OutboxStatus.FAILED
            item.last_error = e.message
            logger.warning("Remote %s failed (attempt %d): %s", item.op.value, item.attempts, e.message)
            return False

        item.status = OutboxStatus.CONFIRMED
        item.last_error = None
        return True

    def _apply_remote(self, item: OutboxItem):
        try:
            if item.op == OutboxOp.SAVE:
                entry = self._find(item.entry_id)
                if entry is None:
                    return
                stored = self.api.save_fact_check(entry.record)
                self._adopt_remote_id(entry, stored)
            elif item.op == OutboxOp.DELETE:
                self.api.delete_fact_check(item.entry_id)
            else:
                self.api.clear_history()
        except ApiError as e:
            if item.op == OutboxOp.DELETE and e.status == 404:
                return
            raise PersistenceUnavailable(str(e), {"status": e.status, "code": e.code}) from e
        except ValueError as e:
            raise PersistenceUnavailable(f"Unreadable server response: {e}") from e

    def _adopt_remote_id(self, entry: HistoryEntry, stored: StoredFactCheck):
        index = self._entries.index(entry)
        self._resolved_ids[entry.id] = stored.id
        self._entries[index] = entry.model_copy(update={"id": stored.id, "owner_id": stored.user_id})

    def sync_from_remote(self) -> bool:
        """
        Replace synced entries with the server's history, keeping entries
        whose save is still queued.

        Returns:
            False if there is no session or the server could not be reached;
            the local history is left untouched in that case
        """
        if not self.api.authenticated:
            return False
        try:
            remote = self.api.get_history(limit=self.history_limit)
        except (ApiError, ValueError) as e:
            logger.warning("Could not load remote history, keeping local cache: %s", e)
            return False

        with self._lock:
            pending_deletes = {item.entry_id for item in self._outbox if item.op == OutboxOp.DELETE}
            pending_clear = any(item.op == OutboxOp.CLEAR for item in self._outbox)

            merged = [entry for entry in self._entries if not entry.synced]
            if not pending_clear:
                for stored in remote:
                    if stored.id in pending_deletes:
                        continue
                    merged.append(HistoryEntry(
                        id=stored.id,
                        owner_id=stored.user_id,
                        record=VerdictRecord.model_validate(
                            stored.model_dump(exclude={"id", "user_id", "saved_at"})
                        ),
                        saved_at=stored.saved_at,
                    ))

            self._entries = merged
            self._sort()
            self._persist()
            return True

    def start_background_reconciler(self, interval: float = 30.0):
        """Run reconcile() every interval seconds on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_reconciler, args=(interval,), daemon=True)
        self._thread.start()

    def _run_reconciler(self, interval: float):
        while not self._stop.wait(interval):
            try:
                self.reconcile()
            except Exception:
                logger.exception("Background reconcile failed")

    def stop(self, timeout: Optional[float] = 5.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
