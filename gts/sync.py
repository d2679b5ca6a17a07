# gts/sync.py
"""Local <-> remote reconciliation.

Last write wins per collection: a push upserts every local record into the
remote backend, a pull replaces the local collections with whatever the
remote returned. There is no field-level merge, so a pull discards local
records that were never pushed.
"""
import logging
import threading
from dataclasses import dataclass, field

from pydantic import ValidationError

from .documents import document_blobs
from .local_store import PARCELS, USERS, driver_profile_key
from .qr import make_qr_record
from .schemas import Parcel, User

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 30.0


@dataclass
class SyncReport:
    pushed_users: int = 0
    pushed_parcels: int = 0
    pulled_users: int = 0
    pulled_parcels: int = 0
    failed: int = 0
    skipped: bool = False
    errors: list[str] = field(default_factory=list)

    def record_failure(self, what: str, error: str | None):
        self.failed += 1
        self.errors.append(f"{what}: {error}")


class SyncReconciler:

    def __init__(self, local, remote, interval: float = DEFAULT_SYNC_INTERVAL,
                 on_complete=None, on_error=None):
        self.local = local
        self.remote = remote
        self.interval = interval
        self.on_complete = on_complete
        self.on_error = on_error
        self._lock = threading.Lock()
        self._thread = None
        self._stop = None

    # ---------------------------
    # push (local -> remote)
    # ---------------------------
    def push_user(self, user: User):
        return self.remote.upsert_user(user)

    def push_parcel(self, parcel: Parcel):
        """Upsert the parcel, then its QR record and document blobs.

        Only the parcel result is returned; the QR and document rows are
        derived from it and are rewritten on every push.
        """
        result = self.remote.upsert_parcel(parcel)
        if result.ok:
            self.remote.save_qr_code(make_qr_record(parcel))
            for blob in document_blobs(parcel):
                self.remote.save_document(blob)
        return result

    def push_all(self) -> SyncReport:
        report = SyncReport()
        if not self.remote.configured:
            logger.info("Remote not configured - skipping full sync")
            report.skipped = True
            return report

        logger.info("Starting full sync...")
        try:
            for record in self.local.read_all(USERS):
                try:
                    user = User.model_validate(record)
                except ValidationError as e:
                    report.record_failure(f"user {record.get('id')}", str(e))
                    continue
                result = self.push_user(user)
                if result.ok:
                    report.pushed_users += 1
                else:
                    report.record_failure(f"user {user.id}", result.error)

            for record in self.local.read_all(PARCELS):
                try:
                    parcel = Parcel.model_validate(record)
                except ValidationError as e:
                    report.record_failure(f"parcel {record.get('reference_number')}", str(e))
                    continue
                result = self.push_parcel(parcel)
                if result.ok:
                    report.pushed_parcels += 1
                else:
                    report.record_failure(f"parcel {parcel.reference_number}", result.error)
        except Exception:
            logger.exception("Error during full sync")
            raise

        if report.failed:
            logger.warning("Full sync finished with %d failure(s)", report.failed)
        else:
            logger.info("Full sync completed: %d user(s), %d parcel(s)",
                        report.pushed_users, report.pushed_parcels)
        return report

    # ---------------------------
    # pull (remote -> local)
    # ---------------------------
    def pull_all(self) -> SyncReport:
        report = SyncReport()
        if not self.remote.configured:
            logger.info("Remote not configured - skipping pull")
            report.skipped = True
            return report

        logger.info("Pulling data from remote...")
        users = self.remote.list_users()
        if not users.ok:
            report.record_failure("users", users.error)
        elif users.data:
            self.local.write_all(USERS, [u.model_dump(mode="json") for u in users.data])
            for user in users.data:
                if user.role == "driver":
                    self.local.write_value(driver_profile_key(user.id),
                                           user.carrier_profile().model_dump(mode="json"))
            report.pulled_users = len(users.data)

        parcels = self.remote.list_parcels()
        if not parcels.ok:
            report.record_failure("parcels", parcels.error)
        elif parcels.data:
            self.local.write_all(PARCELS, [p.model_dump(mode="json") for p in parcels.data])
            report.pulled_parcels = len(parcels.data)

        logger.info("Pulled %d user(s), %d parcel(s)", report.pulled_users, report.pulled_parcels)
        return report

    # ---------------------------
    # background push
    # ---------------------------
    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def configure(self, interval=None, auto_sync=None, on_complete=None, on_error=None):
        if interval is not None:
            self.interval = interval
        if on_complete is not None:
            self.on_complete = on_complete
        if on_error is not None:
            self.on_error = on_error
        if auto_sync is True:
            self.start_auto_sync()
        elif auto_sync is False:
            self.stop_auto_sync()

    def start_auto_sync(self) -> bool:
        """Start the repeating push. Returns False if it was already running."""
        with self._lock:
            if self.is_running:
                return False
            self._stop = threading.Event()
            self._thread = threading.Thread(target=self._run, args=(self._stop,),
                                            name="gts-auto-sync", daemon=True)
            self._thread.start()
        logger.info("Auto-sync started (every %ss)", self.interval)
        return True

    def stop_auto_sync(self, timeout: float | None = 5.0) -> bool:
        """Stop the repeating push. Returns False if it was not running."""
        with self._lock:
            thread, stop = self._thread, self._stop
            self._thread = None
            self._stop = None
        if thread is None:
            return False
        stop.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Auto-sync stopped")
        return True

    def _run(self, stop: threading.Event):
        while not stop.wait(self.interval):
            try:
                report = self.push_all()
            except Exception as e:
                logger.error("Auto-sync error: %s", e)
                if self.on_error:
                    self.on_error(e)
                continue
            if self.on_complete:
                self.on_complete(report)
