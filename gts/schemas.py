"""
Record shapes for the goods-tracking core.

Every record is stored in its JSON form (model_dump(mode="json")) in the
local store and mapped onto a table in the remote backend:
- User -> "users"
- Parcel -> "parcels" (items and documents as JSON columns)
- QRRecord -> "qr_codes"
- DocumentBlob -> "documents"
"""

from typing import Optional, Literal, List

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .hs_codes import get_hs_code
from .utils import cubic_volume_text, new_record_id, utc_now_iso

ParcelStatus = Literal["registered", "verified", "delivered"]
UserRole = Literal["driver", "official"]

# allowed order of status transitions
STATUS_ORDER = ("registered", "verified", "delivered")


class Party(BaseModel):
    name: str
    address: str = ""
    contact: str = ""


class OtherDocument(BaseModel):
    name: str
    data: str  # base64
    type: Literal["image", "pdf"] = "image"


class Item(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    name: str
    category: str = "other"
    value: str = ""
    weight: str = ""  # kg
    cubic_volume: Optional[str] = None  # m3, derived from weight and value
    photo: Optional[str] = None
    form_m: Optional[str] = None
    nxp_number: Optional[str] = None
    hs_code: Optional[str] = None
    other_documents: List[OtherDocument] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def derive_fields(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # never taken from input: always recomputed from weight and value
        data["cubic_volume"] = cubic_volume_text(data.get("weight"), data.get("value"))
        if not data.get("hs_code"):
            data["hs_code"] = get_hs_code(data.get("category"))
        return data


class CarrierProfile(BaseModel):
    """Driver/vehicle details copied onto the generated documents."""
    name: Optional[str] = None
    company_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    vin_number: Optional[str] = None
    insurance_number: Optional[str] = None
    driver_nin: Optional[str] = None
    driver_photo: Optional[str] = None
    license_photo: Optional[str] = None


class User(BaseModel):
    id: str = Field(default_factory=new_record_id)
    phone: str
    full_name: str
    role: UserRole
    company_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    vin_number: Optional[str] = None
    vehicle_description: Optional[str] = None
    vehicle_insurance_number: Optional[str] = None
    driver_nin: Optional[str] = None
    driver_photo: Optional[str] = None
    license_photo: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)

    def carrier_profile(self) -> CarrierProfile:
        return CarrierProfile(
            name=self.full_name,
            company_name=self.company_name,
            vehicle_number=self.vehicle_number,
            vin_number=self.vin_number,
            insurance_number=self.vehicle_insurance_number,
            driver_nin=self.driver_nin,
            driver_photo=self.driver_photo,
            license_photo=self.license_photo,
        )


# ---------------------------
# Bill of Lading
# ---------------------------
class BillCarrier(BaseModel):
    driver_id: str
    driver_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    vin_number: Optional[str] = None
    driver_nin: Optional[str] = None
    insurance_number: Optional[str] = None


class GoodsLine(BaseModel):
    description: str
    quantity: int = 1
    weight: str
    value: str
    category: str
    cubic_volume: Optional[str] = None


class Signature(BaseModel):
    signed: bool = True
    timestamp: str


class Signatures(BaseModel):
    shipper: Signature
    carrier: Signature


class BillOfLading(BaseModel):
    document_type: Literal["Bill of Lading"] = "Bill of Lading"
    reference_number: str
    issue_date: str
    shipper: Party
    consignee: Party
    carrier: BillCarrier
    goods: List[GoodsLine]
    total_value: str
    total_weight: str
    total_volume: Optional[str] = None
    terms_and_conditions: List[str]
    signatures: Signatures


# ---------------------------
# Road Manifest
# ---------------------------
class ManifestDriver(BaseModel):
    id: str
    name: Optional[str] = None
    vehicle_number: Optional[str] = None
    vin_number: Optional[str] = None
    driver_nin: Optional[str] = None
    insurance_number: Optional[str] = None
    driver_photo: Optional[str] = None
    license_photo: Optional[str] = None


class Route(BaseModel):
    origin: str
    destination: str


class CargoLine(BaseModel):
    item_name: str
    category: str
    weight: str
    value: str
    cubic_volume: Optional[str] = None
    photo: Optional[str] = None
    form_m: Optional[str] = None
    nxp_number: Optional[str] = None
    hs_code: Optional[str] = None
    other_documents: List[OtherDocument] = Field(default_factory=list)


class Contact(BaseModel):
    name: str
    contact: str = ""


class RoadManifest(BaseModel):
    document_type: Literal["Road Manifest"] = "Road Manifest"
    reference_number: str
    issue_date: str
    driver: ManifestDriver
    route: Route
    cargo: List[CargoLine]
    shipper: Contact
    consignee: Contact
    total_items: int
    total_weight: str
    total_value: str
    total_volume: Optional[str] = None
    status: ParcelStatus
    compliance_notes: List[str]


class ParcelDocuments(BaseModel):
    bill_of_lading: BillOfLading
    road_manifest: RoadManifest


class Parcel(BaseModel):
    id: str
    reference_number: str
    driver_id: str
    sender: Party
    receiver: Party
    items: List[Item] = Field(min_length=1)
    status: ParcelStatus = "registered"
    created_at: str
    documents: Optional[ParcelDocuments] = None


class QRRecord(BaseModel):
    id: str
    parcel_id: str
    reference_number: str
    qr_data: str
    created_at: str


class DocumentBlob(BaseModel):
    id: str
    parcel_id: str
    document_type: Literal["bill_of_lading", "road_manifest", "other"]
    file_name: str
    file_data: str
    file_type: str
    created_at: str
