# gts/models.py
from sqlalchemy import Column, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from .db import LocalBase, RemoteBase


# local store: one JSON document per key ("users", "parcels", "parcel_counter", ...)
class KeyValue(LocalBase):
    __tablename__ = "kv_store"
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# remote tables; created_at is the record's own ISO timestamp so both stores agree on it
class UserRow(RemoteBase):
    __tablename__ = "users"
    id = Column(String, primary_key=True)
    phone = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, index=True, nullable=False)
    company_name = Column(String, nullable=True)
    vehicle_number = Column(String, nullable=True)
    vin_number = Column(String, nullable=True)
    vehicle_description = Column(String, nullable=True)
    vehicle_insurance_number = Column(String, nullable=True)
    driver_nin = Column(String, nullable=True)
    driver_photo = Column(Text, nullable=True)
    license_photo = Column(Text, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ParcelRow(RemoteBase):
    __tablename__ = "parcels"
    id = Column(String, primary_key=True)
    reference_number = Column(String, unique=True, index=True, nullable=False)
    driver_id = Column(String, index=True, nullable=False)
    sender_name = Column(String, nullable=False)
    sender_address = Column(String, nullable=True)
    sender_contact = Column(String, nullable=True)
    receiver_name = Column(String, nullable=False)
    receiver_address = Column(String, nullable=True)
    receiver_contact = Column(String, nullable=True)
    status = Column(String, default="registered")
    items = Column(JSON, nullable=False)
    documents = Column(JSON, nullable=True)
    created_at = Column(String, index=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class QRCodeRow(RemoteBase):
    __tablename__ = "qr_codes"
    id = Column(String, primary_key=True)
    parcel_id = Column(String, index=True, nullable=False)
    reference_number = Column(String, index=True, nullable=False)
    qr_data = Column(Text, nullable=False)
    created_at = Column(String, nullable=False)


# individually addressable files (rendered documents, attachments)
class DocumentRow(RemoteBase):
    __tablename__ = "documents"
    id = Column(String, primary_key=True)
    parcel_id = Column(String, index=True, nullable=False)
    document_type = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    file_data = Column(Text, nullable=False)
    file_type = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
