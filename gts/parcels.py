# gts/parcels.py
"""Parcel operations used by the driver and official screens.

Writes always land in the local store first; pushing to the remote is left
to the SyncReconciler. Reads try the remote first when one is configured and
mirror any hit back into the local store.
"""
import logging

from pydantic import ValidationError

from .documents import synthesize, with_status
from .errors import InvalidInput, NotFound, Unauthenticated
from .local_store import PARCELS, USERS
from .qr import make_qr_record, parse_qr_payload
from .schemas import STATUS_ORDER, Item, Parcel, Party, QRRecord
from .utils import new_record_id, utc_now_iso

logger = logging.getLogger(__name__)


def _to_parcel(record: dict | None) -> Parcel | None:
    if record is None:
        return None
    try:
        return Parcel.model_validate(record)
    except ValidationError:
        logger.error("Unreadable parcel record %r", record.get("reference_number"), exc_info=True)
        return None


def _party(value, role: str) -> Party:
    if not value:
        raise InvalidInput(f"{role} details are required")
    try:
        party = value if isinstance(value, Party) else Party.model_validate(value)
    except ValidationError as e:
        raise InvalidInput(f"invalid {role}: {e}") from e
    if not party.name.strip():
        raise InvalidInput(f"{role} name is required")
    return party


class ParcelService:

    def __init__(self, local, remote, auth, references, users):
        self.local = local
        self.remote = remote
        self.auth = auth
        self.references = references
        self.users = users

    def _require_caller(self) -> str:
        caller_id = self.auth.current_caller_id()
        if not caller_id:
            raise Unauthenticated("Not authenticated - please log in again")
        return caller_id

    def _mirror(self, parcel: Parcel):
        if not self.local.upsert(PARCELS, parcel.model_dump(mode="json")):
            logger.warning("Parcel %s could not be mirrored locally", parcel.reference_number)

    # ---------------------------
    # create
    # ---------------------------
    def create_parcel(self, sender, receiver, items, driver_id: str) -> Parcel:
        caller_id = self._require_caller()
        sender = _party(sender, "sender")
        receiver = _party(receiver, "receiver")
        if not items:
            raise InvalidInput("at least one item is required")
        try:
            items = [i if isinstance(i, Item) else Item.model_validate(i) for i in items]
        except ValidationError as e:
            raise InvalidInput(f"invalid item: {e}") from e
        if not driver_id:
            raise InvalidInput("driver_id is required")

        metadata = self.auth.current_caller_metadata() if caller_id == driver_id else None
        carrier = self.users.get_carrier_profile(driver_id, metadata)

        parcel = Parcel(
            id=new_record_id(),
            reference_number=self.references.next_reference_number(),
            driver_id=driver_id,
            sender=sender,
            receiver=receiver,
            items=items,
            status="registered",
            created_at=utc_now_iso(),
        )
        parcel = parcel.model_copy(update={"documents": synthesize(parcel, carrier)})

        if not self.local.upsert(PARCELS, parcel.model_dump(mode="json")):
            logger.error("Parcel %s was created but could not be saved locally",
                         parcel.reference_number)
        logger.info("Parcel created: %s (%s)", parcel.reference_number, parcel.id)
        return parcel

    # ---------------------------
    # lookups
    # ---------------------------
    def get_parcel_by_reference(self, reference_number: str) -> Parcel:
        self._require_caller()
        if self.remote.configured:
            result = self.remote.get_parcel_by_reference(reference_number)
            if result.found:
                self._mirror(result.data)
                return result.data
        parcel = _to_parcel(self.local.find_one(PARCELS, "reference_number", reference_number))
        if parcel is None:
            raise NotFound(f"parcel {reference_number} not found")
        return parcel

    def get_parcel_by_id(self, parcel_id: str) -> Parcel:
        self._require_caller()
        if self.remote.configured:
            result = self.remote.get_parcel(parcel_id)
            if result.found:
                self._mirror(result.data)
                return result.data
        parcel = _to_parcel(self.local.find_one(PARCELS, "id", parcel_id))
        if parcel is None:
            raise NotFound(f"parcel {parcel_id} not found")
        return parcel

    def get_parcel_by_qr(self, payload: str) -> Parcel:
        return self.get_parcel_by_reference(parse_qr_payload(payload))

    def get_parcels_by_driver(self, driver_id: str) -> list[Parcel]:
        """Every parcel registered by a driver, in storage order."""
        self._require_caller()
        if self.remote.configured:
            result = self.remote.list_parcels_by_driver(driver_id)
            if result.ok and result.data:
                for parcel in result.data:
                    self._mirror(parcel)
                return result.data
        parcels = [_to_parcel(r) for r in self.local.find_by_field(PARCELS, "driver_id", driver_id)]
        return [p for p in parcels if p is not None]

    def list_parcels(self) -> list[Parcel]:
        self._require_caller()
        if self.remote.configured:
            result = self.remote.list_parcels()
            if result.ok and result.data:
                for parcel in result.data:
                    self._mirror(parcel)
                return result.data
        parcels = [_to_parcel(r) for r in self.local.read_all(PARCELS)]
        return [p for p in parcels if p is not None]

    def get_qr_code(self, reference_number: str) -> QRRecord:
        parcel = self.get_parcel_by_reference(reference_number)
        if self.remote.configured:
            result = self.remote.get_qr_code(reference_number)
            if result.found:
                return result.data
        return make_qr_record(parcel)

    # ---------------------------
    # status
    # ---------------------------
    def update_parcel_status(self, reference_number: str, status: str) -> Parcel:
        """Move a parcel forward along registered -> verified -> delivered.

        Setting the current status again is a no-op; moving backwards fails
        with InvalidInput.
        """
        if status not in STATUS_ORDER:
            raise InvalidInput(f"unknown status {status!r}")
        parcel = self.get_parcel_by_reference(reference_number)
        current = STATUS_ORDER.index(parcel.status)
        target = STATUS_ORDER.index(status)
        if target == current:
            return parcel
        if target < current:
            raise InvalidInput(f"parcel {reference_number} is already {parcel.status}")

        updated = parcel.model_copy(update={
            "status": status,
            "documents": with_status(parcel.documents, status),
        })
        self._mirror(updated)
        if self.remote.configured:
            result = self.remote.update_parcel_status(updated.id, status, updated.documents)
            if not result.ok:
                logger.warning("Status of %s not sent to remote; next push will carry it",
                               reference_number)
        logger.info("Parcel %s: %s -> %s", reference_number, parcel.status, status)
        return updated

    def acknowledge_parcel(self, reference_number: str) -> Parcel:
        """Mark a registered parcel as verified; later states are left alone."""
        parcel = self.get_parcel_by_reference(reference_number)
        if parcel.status != "registered":
            logger.info("Parcel %s already %s - acknowledge ignored", reference_number, parcel.status)
            return parcel
        return self.update_parcel_status(reference_number, "verified")

    def mark_delivered(self, reference_number: str) -> Parcel:
        return self.update_parcel_status(reference_number, "delivered")

    # ---------------------------
    # stats
    # ---------------------------
    def get_stats(self) -> dict:
        self._require_caller()
        if self.remote.configured:
            result = self.remote.get_stats()
            if result.ok:
                return result.data
        users = self.local.read_all(USERS)
        parcels = self.local.read_all(PARCELS)
        return {
            "drivers": sum(1 for u in users if u.get("role") == "driver"),
            "officials": sum(1 for u in users if u.get("role") == "official"),
            "parcels": len(parcels),
            "documents": 2 * sum(1 for p in parcels if p.get("documents")),
            "qr_codes": len(parcels),
        }
