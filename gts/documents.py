# gts/documents.py
"""Bill of Lading and Road Manifest synthesis.

Both documents are derived once from a parcel record plus whatever carrier
details are known for its driver. Nothing here touches storage or the clock:
issue dates and signature stamps come from ``parcel.created_at`` so the same
parcel always yields the same documents.
"""
from decimal import Decimal, ROUND_HALF_UP

from .schemas import (
    BillCarrier,
    BillOfLading,
    CargoLine,
    CarrierProfile,
    Contact,
    DocumentBlob,
    GoodsLine,
    ManifestDriver,
    Parcel,
    ParcelDocuments,
    Party,
    RoadManifest,
    Route,
    Signature,
    Signatures,
)
from .utils import parse_amount, stable_id

CURRENCY = "₦"

TERMS_AND_CONDITIONS = [
    "The carrier shall not be liable for any loss or damage unless caused by negligence.",
    "All goods are carried at owner's risk unless otherwise specified.",
    "The consignee must inspect goods upon delivery and report any discrepancies immediately.",
    "Payment terms: COD (Cash on Delivery) unless prior arrangements have been made.",
    "This Bill of Lading is subject to the laws and regulations of Nigeria.",
    "The carrier reserves the right to refuse delivery if proper identification is not provided.",
]

COMPLIANCE_NOTES = [
    "Driver must carry valid driver's license and vehicle registration.",
    "All cargo must be properly secured during transport.",
    "Driver must comply with all traffic regulations and road safety guidelines.",
    "Cargo must not be altered, opened, or tampered with during transit.",
    "Driver must report any incidents or accidents immediately.",
    "This manifest must be presented upon request by authorized officials.",
    "Delivery must be made only to the named consignee or authorized representative.",
]

_CENTS = Decimal("0.01")


def _fmt(amount: Decimal) -> str:
    return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def compute_totals(parcel: Parcel) -> dict:
    """Sum value, weight and volume over the parcel's items.

    Returns the formatted totals; ``total_volume`` is None when no item has a
    cubic volume.
    """
    total_value = sum((parse_amount(item.value) for item in parcel.items), Decimal(0))
    total_weight = sum((parse_amount(item.weight) for item in parcel.items), Decimal(0))
    volumes = [item.cubic_volume for item in parcel.items if item.cubic_volume]
    total_volume = sum((parse_amount(v) for v in volumes), Decimal(0))
    return {
        "total_value": f"{CURRENCY}{_fmt(total_value)}",
        "total_weight": f"{_fmt(total_weight)} Kg",
        "total_volume": f"{_fmt(total_volume)} m³" if volumes else None,
    }


def generate_bill_of_lading(parcel: Parcel, carrier: CarrierProfile | None = None) -> BillOfLading:
    carrier = carrier or CarrierProfile()
    totals = compute_totals(parcel)
    return BillOfLading(
        reference_number=parcel.reference_number,
        issue_date=parcel.created_at,
        shipper=Party(**parcel.sender.model_dump()),
        consignee=Party(**parcel.receiver.model_dump()),
        carrier=BillCarrier(
            driver_id=parcel.driver_id,
            driver_name=carrier.name,
            vehicle_number=carrier.vehicle_number,
            vin_number=carrier.vin_number,
            driver_nin=carrier.driver_nin,
            insurance_number=carrier.insurance_number,
        ),
        goods=[
            GoodsLine(
                description=item.name,
                quantity=1,
                weight=f"{item.weight} Kg",
                value=f"{CURRENCY}{item.value}",
                category=item.category,
                cubic_volume=item.cubic_volume,
            )
            for item in parcel.items
        ],
        terms_and_conditions=list(TERMS_AND_CONDITIONS),
        # placeholder: both parties count as signed when the parcel is registered
        signatures=Signatures(
            shipper=Signature(signed=True, timestamp=parcel.created_at),
            carrier=Signature(signed=True, timestamp=parcel.created_at),
        ),
        **totals,
    )


def generate_road_manifest(parcel: Parcel, carrier: CarrierProfile | None = None) -> RoadManifest:
    carrier = carrier or CarrierProfile()
    totals = compute_totals(parcel)
    return RoadManifest(
        reference_number=parcel.reference_number,
        issue_date=parcel.created_at,
        driver=ManifestDriver(
            id=parcel.driver_id,
            name=carrier.name,
            vehicle_number=carrier.vehicle_number,
            vin_number=carrier.vin_number,
            driver_nin=carrier.driver_nin,
            insurance_number=carrier.insurance_number,
            driver_photo=carrier.driver_photo,
            license_photo=carrier.license_photo,
        ),
        route=Route(origin=parcel.sender.address, destination=parcel.receiver.address),
        cargo=[
            CargoLine(
                item_name=item.name,
                category=item.category,
                weight=f"{item.weight} Kg",
                value=f"{CURRENCY}{item.value}",
                cubic_volume=item.cubic_volume,
                photo=item.photo,
                form_m=item.form_m,
                nxp_number=item.nxp_number,
                hs_code=item.hs_code,
                other_documents=list(item.other_documents),
            )
            for item in parcel.items
        ],
        shipper=Contact(name=parcel.sender.name, contact=parcel.sender.contact),
        consignee=Contact(name=parcel.receiver.name, contact=parcel.receiver.contact),
        total_items=len(parcel.items),
        status=parcel.status,
        compliance_notes=list(COMPLIANCE_NOTES),
        **totals,
    )


def synthesize(parcel: Parcel, carrier: CarrierProfile | None = None) -> ParcelDocuments:
    """Generate both documents for a parcel."""
    return ParcelDocuments(
        bill_of_lading=generate_bill_of_lading(parcel, carrier),
        road_manifest=generate_road_manifest(parcel, carrier),
    )


def with_status(documents: ParcelDocuments | None, status: str) -> ParcelDocuments | None:
    """Copy of the documents with the manifest status moved to ``status``."""
    if documents is None:
        return None
    manifest = documents.road_manifest.model_copy(update={"status": status})
    return documents.model_copy(update={"road_manifest": manifest})


def document_blobs(parcel: Parcel) -> list[DocumentBlob]:
    """The embedded documents as JSON files for the remote documents table."""
    if parcel.documents is None:
        return []
    blobs = []
    for doc_type, doc in (("bill_of_lading", parcel.documents.bill_of_lading),
                          ("road_manifest", parcel.documents.road_manifest)):
        blobs.append(DocumentBlob(
            id=stable_id(doc_type, parcel.id),
            parcel_id=parcel.id,
            document_type=doc_type,
            file_name=f"{parcel.reference_number}-{doc_type}.json",
            file_data=doc.model_dump_json(),
            file_type="application/json",
            created_at=parcel.created_at,
        ))
    return blobs
