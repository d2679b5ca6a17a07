# gts/users.py
import logging

from pydantic import ValidationError

from .errors import InvalidInput, NotFound
from .local_store import USERS, driver_profile_key
from .schemas import CarrierProfile, User
from .utils import normalize_phone

logger = logging.getLogger(__name__)

# session metadata key -> CarrierProfile field
_METADATA_FIELDS = {
    "full_name": "name",
    "company_name": "company_name",
    "vehicle_number": "vehicle_number",
    "vin_number": "vin_number",
    "vehicle_insurance_number": "insurance_number",
    "driver_nin": "driver_nin",
    "driver_photo": "driver_photo",
    "license_photo": "license_photo",
}


def _to_user(record: dict) -> User | None:
    try:
        return User.model_validate(record)
    except ValidationError:
        logger.error("Skipping unreadable user record %r", record.get("id"), exc_info=True)
        return None


class UserService:

    def __init__(self, local, remote):
        self.local = local
        self.remote = remote

    def register_user(self, user) -> User:
        """Store a new (or updated) user profile locally.

        Phone numbers are unique across users and a user's role never
        changes. Drivers also get their carrier profile written under
        their own key for parcel creation to pick up.
        """
        if not isinstance(user, User):
            try:
                user = User.model_validate(user)
            except ValidationError as e:
                raise InvalidInput(str(e)) from e
        phone = normalize_phone(user.phone)
        if not phone:
            raise InvalidInput("phone is required")
        if not user.full_name.strip():
            raise InvalidInput("full_name is required")

        for record in self.local.read_all(USERS):
            if record.get("id") == user.id:
                if record.get("role") != user.role:
                    raise InvalidInput("role cannot be changed after sign-up")
                # keep the original sign-up time
                user = user.model_copy(update={"created_at": record.get("created_at", user.created_at)})
            elif normalize_phone(record.get("phone")) == phone:
                raise InvalidInput(f"phone {user.phone} is already registered")

        self.local.upsert(USERS, user.model_dump(mode="json"))
        if user.role == "driver":
            self.local.write_value(driver_profile_key(user.id),
                                   user.carrier_profile().model_dump(mode="json"))
        logger.info("User registered: %s (%s)", user.id, user.role)
        return user

    def get_user(self, user_id: str) -> User:
        if self.remote.configured:
            result = self.remote.get_user(user_id)
            if result.found:
                self.local.upsert(USERS, result.data.model_dump(mode="json"))
                return result.data
        record = self.local.find_one(USERS, "id", user_id)
        user = _to_user(record) if record else None
        if user is None:
            raise NotFound(f"user {user_id} not found")
        return user

    def list_users(self, role: str | None = None) -> list[User]:
        if self.remote.configured:
            result = self.remote.list_users(role)
            if result.ok and result.data:
                for user in result.data:
                    self.local.upsert(USERS, user.model_dump(mode="json"))
                return result.data
        users = [_to_user(r) for r in self.local.read_all(USERS)]
        return [u for u in users if u is not None and (role is None or u.role == role)]

    def get_carrier_profile(self, driver_id: str, metadata: dict | None = None) -> CarrierProfile:
        """Best-effort carrier details for a driver, from the local store only.

        Falls back from the stored driver profile to the user record, then
        fills remaining gaps from the caller's session metadata.
        """
        profile = None
        stored = self.local.read_value(driver_profile_key(driver_id))
        if stored:
            try:
                profile = CarrierProfile.model_validate(stored)
            except ValidationError:
                logger.error("Driver profile for %s is unreadable", driver_id, exc_info=True)
        if profile is None:
            record = self.local.find_one(USERS, "id", driver_id)
            user = _to_user(record) if record else None
            if user is not None:
                profile = user.carrier_profile()
        if profile is None:
            logger.info("No driver profile found for %s", driver_id)
            profile = CarrierProfile()

        if metadata:
            gaps = {}
            for meta_key, field in _METADATA_FIELDS.items():
                if getattr(profile, field) is None and metadata.get(meta_key):
                    gaps[field] = metadata[meta_key]
            if gaps:
                profile = profile.model_copy(update=gaps)
        return profile
