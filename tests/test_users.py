"""Tests for user registration and carrier profile lookup."""
import pytest

from gts.errors import InvalidInput, NotFound
from gts.local_store import USERS, driver_profile_key
from gts.schemas import User
from gts.users import UserService


@pytest.fixture
def users(local, offline):
    return UserService(local, offline)


class TestRegister:

    def test_driver_registration_writes_profile(self, users, local, driver_user):
        user = users.register_user(driver_user)
        assert user.id == "D1"
        assert local.find_one(USERS, "id", "D1")["phone"] == driver_user["phone"]
        profile = local.read_value(driver_profile_key("D1"))
        assert profile["vehicle_number"] == "KAN-555-AB"
        assert profile["insurance_number"] == "INS-88812"

    def test_official_has_no_profile(self, users, local):
        user = users.register_user({"phone": "0700 111", "full_name": "Officer Obi", "role": "official"})
        assert user.id
        assert local.read_value(driver_profile_key(user.id)) is None

    def test_duplicate_phone_rejected(self, users, driver_user):
        users.register_user(driver_user)
        with pytest.raises(InvalidInput):
            users.register_user({**driver_user, "id": "D2", "phone": "+2348025550101"})

    def test_role_is_immutable(self, users, driver_user):
        users.register_user(driver_user)
        with pytest.raises(InvalidInput):
            users.register_user({**driver_user, "role": "official"})

    def test_profile_update_keeps_signup_time(self, users, driver_user):
        first = users.register_user(driver_user)
        second = users.register_user({**driver_user, "vehicle_number": "NEW-1"})
        assert second.created_at == first.created_at
        assert users.get_user("D1").vehicle_number == "NEW-1"

    def test_invalid_role(self, users):
        with pytest.raises(InvalidInput):
            users.register_user({"phone": "1", "full_name": "X", "role": "admin"})

    def test_missing_phone(self, users):
        with pytest.raises(InvalidInput):
            users.register_user({"phone": "---", "full_name": "X", "role": "driver"})


class TestLookup:

    def test_get_unknown_user(self, users):
        with pytest.raises(NotFound):
            users.get_user("nobody")

    def test_list_by_role(self, users, driver_user):
        users.register_user(driver_user)
        users.register_user({"phone": "0700", "full_name": "Officer Obi", "role": "official"})
        assert [u.id for u in users.list_users("driver")] == ["D1"]
        assert len(users.list_users()) == 2

    def test_remote_users_are_mirrored(self, local, remote, driver_user):
        remote.upsert_user(User(**driver_user))
        service = UserService(local, remote)
        assert service.get_user("D1").full_name == "Musa Bello"
        assert local.find_one(USERS, "id", "D1") is not None


class TestCarrierProfile:

    def test_from_stored_profile(self, users, driver_user):
        users.register_user(driver_user)
        profile = users.get_carrier_profile("D1")
        assert profile.name == "Musa Bello"
        assert profile.vin_number == "1HGCM82633A004352"
        assert profile.driver_photo == "aGVsbG8="

    def test_from_user_record_when_profile_missing(self, users, local, driver_user):
        local.write_all(USERS, [User(**driver_user).model_dump(mode="json")])
        assert users.get_carrier_profile("D1").vehicle_number == "KAN-555-AB"

    def test_unknown_driver_gives_empty_profile(self, users):
        profile = users.get_carrier_profile("ghost")
        assert profile.name is None
        assert profile.vehicle_number is None

    def test_session_metadata_fills_gaps(self, users):
        profile = users.get_carrier_profile("ghost", {"full_name": "Musa", "vehicle_insurance_number": "INS-1"})
        assert profile.name == "Musa"
        assert profile.insurance_number == "INS-1"

    def test_metadata_does_not_override_profile(self, users, driver_user):
        users.register_user(driver_user)
        profile = users.get_carrier_profile("D1", {"vehicle_number": "OTHER"})
        assert profile.vehicle_number == "KAN-555-AB"

    def test_corrupt_profile_falls_back(self, users, local, driver_user):
        users.register_user(driver_user)
        local.write_value(driver_profile_key("D1"), {"name": ["not", "a", "string"]})
        assert users.get_carrier_profile("D1").vehicle_number == "KAN-555-AB"
