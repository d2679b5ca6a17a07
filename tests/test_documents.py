"""Tests for Bill of Lading / Road Manifest synthesis."""
import pytest

from gts.documents import (
    COMPLIANCE_NOTES,
    TERMS_AND_CONDITIONS,
    compute_totals,
    document_blobs,
    synthesize,
    with_status,
)
from gts.schemas import CarrierProfile, Item, Parcel

CREATED = "2025-03-09T10:15:00+00:00"


def make_parcel(items, status="registered"):
    return Parcel(
        id="p-1",
        reference_number="GTS-20250309-1001",
        driver_id="D1",
        sender={"name": "Ada", "address": "Lagos", "contact": "0801"},
        receiver={"name": "Sani", "address": "Kano", "contact": "0803"},
        items=items,
        status=status,
        created_at=CREATED,
    )


@pytest.fixture
def parcel():
    return make_parcel([
        {"name": "Laptop", "category": "electronics", "value": "₦1,000.50", "weight": "5"},
        {"name": "Shirts", "category": "clothing", "value": "2000", "weight": "2.5", "form_m": "MF-1"},
    ])


class TestItemDerivation:

    def test_cubic_volume_is_recomputed(self):
        item = Item(name="Chair", category="furniture", value="5000", weight="10", cubic_volume="99")
        assert item.cubic_volume == "0.1333"

    def test_missing_inputs_leave_volume_empty(self):
        assert Item(name="Box", value="0", weight="10").cubic_volume is None

    def test_hs_code_from_category(self):
        assert Item(name="Phone", category="Electronics").hs_code == "8517.62.00"
        assert Item(name="Custom", category="food", hs_code="1234.56.78").hs_code == "1234.56.78"

    def test_numbers_accepted_as_text(self):
        item = Item(name="Laptop", value=200000, weight=5)
        assert item.value == "200000"
        assert item.weight == "5"


class TestTotals:

    def test_sums(self, parcel):
        totals = compute_totals(parcel)
        assert totals["total_value"] == "₦3000.50"
        assert totals["total_weight"] == "7.50 Kg"
        # 5/75 + 2.5/75
        assert totals["total_volume"] == "0.10 m³"

    def test_volume_omitted_without_any_item_volume(self):
        p = make_parcel([{"name": "Letter", "value": "", "weight": "0.2"}])
        assert compute_totals(p)["total_volume"] is None

    def test_malformed_values_count_as_zero(self):
        p = make_parcel([
            {"name": "A", "value": "priceless", "weight": "heavy"},
            {"name": "B", "value": "100", "weight": "1.2.3"},
            {"name": "C", "value": "50", "weight": "2"},
        ])
        totals = compute_totals(p)
        assert totals["total_value"] == "₦150.00"
        assert totals["total_weight"] == "2.00 Kg"


class TestSynthesize:

    def test_bill_of_lading(self, parcel):
        carrier = CarrierProfile(name="Musa", vehicle_number="KAN-1", vin_number="VIN9",
                                 insurance_number="INS", driver_nin="NIN")
        bol = synthesize(parcel, carrier).bill_of_lading
        assert bol.document_type == "Bill of Lading"
        assert bol.reference_number == parcel.reference_number
        assert bol.issue_date == CREATED
        assert bol.shipper.name == "Ada"
        assert bol.consignee.address == "Kano"
        assert bol.carrier.driver_id == "D1"
        assert bol.carrier.driver_name == "Musa"
        assert bol.carrier.insurance_number == "INS"
        assert [g.description for g in bol.goods] == ["Laptop", "Shirts"]
        assert bol.goods[0].weight == "5 Kg"
        assert bol.goods[1].value == "₦2000"
        assert bol.terms_and_conditions == TERMS_AND_CONDITIONS
        assert bol.signatures.shipper.signed and bol.signatures.carrier.signed
        assert bol.signatures.carrier.timestamp == CREATED

    def test_road_manifest(self, parcel):
        carrier = CarrierProfile(name="Musa", driver_photo="cGhvdG8=", license_photo="bGljZW5zZQ==")
        rm = synthesize(parcel, carrier).road_manifest
        assert rm.document_type == "Road Manifest"
        assert rm.route.origin == "Lagos"
        assert rm.route.destination == "Kano"
        assert rm.driver.driver_photo == "cGhvdG8="
        assert rm.total_items == 2
        assert rm.cargo[0].hs_code == "8517.62.00"
        assert rm.cargo[1].form_m == "MF-1"
        assert rm.status == "registered"
        assert rm.compliance_notes == COMPLIANCE_NOTES
        assert rm.total_weight == "7.50 Kg"

    def test_missing_carrier_is_tolerated(self, parcel):
        docs = synthesize(parcel)
        assert docs.bill_of_lading.carrier.driver_name is None
        assert docs.road_manifest.driver.vehicle_number is None
        assert docs.road_manifest.driver.id == "D1"

    def test_deterministic(self, parcel):
        carrier = CarrierProfile(name="Musa")
        first = synthesize(parcel, carrier)
        second = synthesize(parcel, carrier)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_with_status(self, parcel):
        docs = synthesize(parcel)
        moved = with_status(docs, "verified")
        assert moved.road_manifest.status == "verified"
        assert docs.road_manifest.status == "registered"
        assert moved.bill_of_lading == docs.bill_of_lading
        assert with_status(None, "verified") is None


class TestDocumentBlobs:

    def test_two_json_blobs(self, parcel):
        parcel = parcel.model_copy(update={"documents": synthesize(parcel)})
        blobs = document_blobs(parcel)
        assert [b.document_type for b in blobs] == ["bill_of_lading", "road_manifest"]
        assert blobs[0].file_name == "GTS-20250309-1001-bill_of_lading.json"
        assert blobs[0].file_type == "application/json"
        assert '"reference_number":"GTS-20250309-1001"' in blobs[1].file_data
        assert document_blobs(parcel) == blobs

    def test_no_documents(self, parcel):
        assert document_blobs(parcel) == []
