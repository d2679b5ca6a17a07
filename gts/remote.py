# gts/remote.py
"""Optional relational backend mirroring the local store.

Every public method returns a RemoteResult and never raises: when the
backend is not configured the call is skipped, and transport or query
errors are logged and reported as ``ok=False``. Callers can therefore tell
"nothing there" (ok, data None/empty) from "call failed" (not ok).
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .config import is_remote_configured
from .db import RemoteBase, init_db, make_engine, make_session_factory
from .errors import RemoteUnavailable
from .models import DocumentRow, ParcelRow, QRCodeRow, UserRow
from .schemas import DocumentBlob, Parcel, ParcelDocuments, Party, QRRecord, User

logger = logging.getLogger(__name__)


@dataclass
class RemoteResult:
    ok: bool
    data: Any = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def found(self) -> bool:
        return self.ok and self.data is not None

    @classmethod
    def success(cls, data=None) -> "RemoteResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "RemoteResult":
        return cls(ok=False, error=error)

    @classmethod
    def skip(cls) -> "RemoteResult":
        return cls(ok=False, error="remote not configured", skipped=True)


# ---------------------------
# row <-> record mapping
# ---------------------------
def user_to_row(user: User) -> UserRow:
    return UserRow(
        id=user.id,
        phone=user.phone,
        full_name=user.full_name,
        role=user.role,
        company_name=user.company_name,
        vehicle_number=user.vehicle_number,
        vin_number=user.vin_number,
        vehicle_description=user.vehicle_description,
        vehicle_insurance_number=user.vehicle_insurance_number,
        driver_nin=user.driver_nin,
        driver_photo=user.driver_photo,
        license_photo=user.license_photo,
        created_at=user.created_at,
    )


def row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        phone=row.phone,
        full_name=row.full_name,
        role=row.role,
        company_name=row.company_name,
        vehicle_number=row.vehicle_number,
        vin_number=row.vin_number,
        vehicle_description=row.vehicle_description,
        vehicle_insurance_number=row.vehicle_insurance_number,
        driver_nin=row.driver_nin,
        driver_photo=row.driver_photo,
        license_photo=row.license_photo,
        created_at=row.created_at,
    )


def parcel_to_row(parcel: Parcel) -> ParcelRow:
    data = parcel.model_dump(mode="json")
    return ParcelRow(
        id=parcel.id,
        reference_number=parcel.reference_number,
        driver_id=parcel.driver_id,
        sender_name=parcel.sender.name,
        sender_address=parcel.sender.address,
        sender_contact=parcel.sender.contact,
        receiver_name=parcel.receiver.name,
        receiver_address=parcel.receiver.address,
        receiver_contact=parcel.receiver.contact,
        status=parcel.status,
        items=data["items"],
        documents=data["documents"],
        created_at=parcel.created_at,
    )


def row_to_parcel(row: ParcelRow) -> Parcel:
    return Parcel(
        id=row.id,
        reference_number=row.reference_number,
        driver_id=row.driver_id,
        sender=Party(name=row.sender_name, address=row.sender_address or "",
                     contact=row.sender_contact or ""),
        receiver=Party(name=row.receiver_name, address=row.receiver_address or "",
                       contact=row.receiver_contact or ""),
        items=row.items,
        status=row.status,
        created_at=row.created_at,
        documents=row.documents,
    )


def _qr_from_row(row: QRCodeRow) -> QRRecord:
    return QRRecord(id=row.id, parcel_id=row.parcel_id, reference_number=row.reference_number,
                    qr_data=row.qr_data, created_at=row.created_at)


def _document_from_row(row: DocumentRow) -> DocumentBlob:
    return DocumentBlob(id=row.id, parcel_id=row.parcel_id, document_type=row.document_type,
                        file_name=row.file_name, file_data=row.file_data,
                        file_type=row.file_type, created_at=row.created_at)


class RemoteStore:

    def __init__(self, url: str | None = None):
        self.url = url or ""
        self.configured = is_remote_configured(self.url)
        self.engine = None
        self.SessionLocal = None
        self._schema_ready = False
        if self.configured:
            try:
                self.engine = make_engine(self.url)
                self.SessionLocal = make_session_factory(self.engine)
            except (SQLAlchemyError, ImportError):
                logger.error("Remote backend %s is unusable; running local-only", self.engine_label, exc_info=True)
                self.configured = False

    @property
    def engine_label(self) -> str:
        # never log credentials
        return self.url.split("@")[-1]

    def _ensure_schema(self):
        if self._schema_ready:
            return
        try:
            init_db(self.engine, RemoteBase)
        except SQLAlchemyError as e:
            raise RemoteUnavailable(f"remote backend {self.engine_label} unreachable: {e}") from e
        self._schema_ready = True

    def _run(self, action: str, fn) -> RemoteResult:
        if not self.configured:
            logger.debug("Remote not configured - skipping %s", action)
            return RemoteResult.skip()
        try:
            self._ensure_schema()
            db = self.SessionLocal()
            try:
                with db.begin():
                    data = fn(db)
            finally:
                db.close()
            return RemoteResult.success(data)
        except RemoteUnavailable as e:
            logger.error("Remote %s failed: %s", action, e)
            return RemoteResult.failure(str(e))
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("Remote %s failed: %s", action, e, exc_info=True)
            return RemoteResult.failure(str(e))

    # ---------------------------
    # users
    # ---------------------------
    def upsert_user(self, user: User) -> RemoteResult:
        def op(db):
            db.merge(user_to_row(user))
            return user
        result = self._run("user upsert", op)
        if result.ok:
            logger.info("User synced to remote: %s", user.id)
        return result

    def get_user(self, user_id: str) -> RemoteResult:
        def op(db):
            row = db.get(UserRow, user_id)
            return row_to_user(row) if row else None
        return self._run("user fetch", op)

    def list_users(self, role: str | None = None) -> RemoteResult:
        def op(db):
            q = db.query(UserRow)
            if role:
                q = q.filter(UserRow.role == role)
            return [row_to_user(r) for r in q.order_by(UserRow.created_at.desc()).all()]
        return self._run("users fetch", op)

    # ---------------------------
    # parcels
    # ---------------------------
    def upsert_parcel(self, parcel: Parcel) -> RemoteResult:
        def op(db):
            db.merge(parcel_to_row(parcel))
            return parcel
        result = self._run("parcel upsert", op)
        if result.ok:
            logger.info("Parcel synced to remote: %s", parcel.reference_number)
        return result

    def get_parcel(self, parcel_id: str) -> RemoteResult:
        def op(db):
            row = db.get(ParcelRow, parcel_id)
            return row_to_parcel(row) if row else None
        return self._run("parcel fetch", op)

    def get_parcel_by_reference(self, reference_number: str) -> RemoteResult:
        def op(db):
            row = db.query(ParcelRow).filter(ParcelRow.reference_number == reference_number).first()
            return row_to_parcel(row) if row else None
        return self._run("parcel fetch by reference", op)

    def list_parcels(self) -> RemoteResult:
        def op(db):
            rows = db.query(ParcelRow).order_by(ParcelRow.created_at.desc()).all()
            return [row_to_parcel(r) for r in rows]
        return self._run("parcels fetch", op)

    def list_parcels_by_driver(self, driver_id: str) -> RemoteResult:
        def op(db):
            rows = (db.query(ParcelRow)
                    .filter(ParcelRow.driver_id == driver_id)
                    .order_by(ParcelRow.created_at.desc())
                    .all())
            return [row_to_parcel(r) for r in rows]
        return self._run("parcels fetch by driver", op)

    def update_parcel_status(self, parcel_id: str, status: str,
                             documents: ParcelDocuments | None = None) -> RemoteResult:
        def op(db):
            row = db.get(ParcelRow, parcel_id)
            if row is None:
                return None
            row.status = status
            if documents is not None:
                row.documents = documents.model_dump(mode="json")
            db.flush()
            return row_to_parcel(row)
        return self._run("parcel status update", op)

    # ---------------------------
    # QR codes and document blobs
    # ---------------------------
    def save_qr_code(self, record: QRRecord) -> RemoteResult:
        def op(db):
            db.merge(QRCodeRow(**record.model_dump()))
            return record
        return self._run("QR code save", op)

    def get_qr_code(self, reference_number: str) -> RemoteResult:
        def op(db):
            row = db.query(QRCodeRow).filter(QRCodeRow.reference_number == reference_number).first()
            return _qr_from_row(row) if row else None
        return self._run("QR code fetch", op)

    def save_document(self, blob: DocumentBlob) -> RemoteResult:
        def op(db):
            db.merge(DocumentRow(**blob.model_dump()))
            return blob
        return self._run("document save", op)

    def list_documents(self, parcel_id: str) -> RemoteResult:
        def op(db):
            rows = (db.query(DocumentRow)
                    .filter(DocumentRow.parcel_id == parcel_id)
                    .order_by(DocumentRow.created_at.desc())
                    .all())
            return [_document_from_row(r) for r in rows]
        return self._run("documents fetch", op)

    # ---------------------------
    # statistics
    # ---------------------------
    def get_stats(self) -> RemoteResult:
        def op(db):
            return {
                "drivers": db.query(func.count(UserRow.id)).filter(UserRow.role == "driver").scalar() or 0,
                "officials": db.query(func.count(UserRow.id)).filter(UserRow.role == "official").scalar() or 0,
                "parcels": db.query(func.count(ParcelRow.id)).scalar() or 0,
                "documents": db.query(func.count(DocumentRow.id)).scalar() or 0,
                "qr_codes": db.query(func.count(QRCodeRow.id)).scalar() or 0,
            }
        return self._run("stats fetch", op)
