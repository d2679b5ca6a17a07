"""Tests for reference numbers, ids, cubic volume and HS codes."""
import re
import uuid
from datetime import date
from decimal import Decimal

import pytest

from gts.errors import StorageUnavailable
from gts.hs_codes import get_hs_code, get_hs_code_description
from gts.utils import (
    ReferenceGenerator,
    calculate_cubic_volume,
    cubic_volume_text,
    format_reference,
    new_record_id,
    normalize_phone,
    parse_amount,
    stable_id,
)


class TestReferenceGenerator:

    def test_format(self):
        assert format_reference("GTS", 7, "20250101") == "GTS-20250101-0007"

    def test_first_number_follows_counter_start(self, local):
        refs = ReferenceGenerator(local, prefix="GTS", counter_start=1000)
        assert refs.next_reference_number(date(2025, 3, 9)) == "GTS-20250309-1001"

    def test_strictly_increasing_same_day(self, local):
        refs = ReferenceGenerator(local)
        numbers = [refs.next_reference_number(date(2025, 3, 9)) for _ in range(5)]
        suffixes = [int(n.rsplit("-", 1)[1]) for n in numbers]
        assert suffixes == list(range(suffixes[0], suffixes[0] + 5))
        assert len(set(numbers)) == 5

    def test_counter_is_persisted(self, local):
        ReferenceGenerator(local).next_reference_number()
        ReferenceGenerator(local).next_reference_number()
        assert local.read_value("parcel_counter") == 1002

    def test_counter_not_reset_across_days(self, local):
        refs = ReferenceGenerator(local)
        assert refs.next_reference_number(date(2025, 1, 1)).endswith("-1001")
        assert refs.next_reference_number(date(2025, 1, 2)) == "GTS-20250102-1002"

    def test_field_widens_past_9999(self, local):
        refs = ReferenceGenerator(local, counter_start=9999)
        assert refs.next_reference_number(date(2025, 1, 1)) == "GTS-20250101-10000"

    def test_default_date_is_today(self, local):
        ref = ReferenceGenerator(local, prefix="ABC").next_reference_number()
        assert re.fullmatch(rf"ABC-{date.today():%Y%m%d}-\d{{4,}}", ref)

    def test_unpersistable_counter_raises(self, local, monkeypatch):
        monkeypatch.setattr(local, "increment", lambda key, start=0: None)
        with pytest.raises(StorageUnavailable):
            ReferenceGenerator(local).next_reference_number()


class TestIds:

    def test_record_ids_are_unique_uuids(self):
        ids = {new_record_id() for _ in range(200)}
        assert len(ids) == 200
        for value in ids:
            uuid.UUID(value)

    def test_stable_id_is_deterministic(self):
        assert stable_id("qr", "p1") == stable_id("qr", "p1")
        assert stable_id("qr", "p1") != stable_id("qr", "p2")
        assert stable_id("qr", "p1") != stable_id("road_manifest", "p1")


class TestCubicVolume:

    def test_mid_bracket(self):
        assert calculate_cubic_volume(10, 50_000) == 0.0667

    def test_low_bracket(self):
        assert calculate_cubic_volume(10, 5_000) == 0.1333

    def test_high_bracket(self):
        assert calculate_cubic_volume(5, 200_000) == 0.02

    def test_bracket_uses_total_value(self):
        # 500 per kg would be the 75 kg/m3 bracket; the total puts it at 150
        assert calculate_cubic_volume(100, 50_000) == 0.6667
        assert calculate_cubic_volume(1, 9_999) == 0.0133

    @pytest.mark.parametrize("weight,value", [(0, 5000), (10, 0), (-1, 5000), (10, -5)])
    def test_non_positive_inputs_give_no_volume(self, weight, value):
        assert calculate_cubic_volume(weight, value) is None

    def test_text_form(self):
        assert cubic_volume_text("10", "50,000") == "0.0667"
        assert cubic_volume_text("", "50000") is None
        assert cubic_volume_text("abc", "50000") is None


class TestParsing:

    def test_parse_amount_strips_currency(self):
        assert parse_amount("₦200,000.50") == Decimal("200000.50")
        assert parse_amount("5 Kg") == Decimal("5")

    def test_parse_amount_degrades_to_zero(self):
        assert parse_amount(None) == 0
        assert parse_amount("n/a") == 0
        assert parse_amount("1.2.3") == 0

    def test_normalize_phone(self):
        assert normalize_phone("+234 (802) 555-0101") == "2348025550101"
        assert normalize_phone(None) == ""


class TestHSCodes:

    def test_known_category(self):
        assert get_hs_code("electronics") == "8517.62.00"
        assert get_hs_code("  Auto-Parts ") == "8708.99.00"

    def test_unknown_category_falls_back(self):
        assert get_hs_code("spaceships") == "9999.99.00"
        assert get_hs_code(None) == "9999.99.00"

    def test_description(self):
        assert get_hs_code_description("9403.60.00") == "Other wooden furniture"
        assert get_hs_code_description("0000.00.00") == "Trade classification code"
