"""Shared fixtures: a SQLite-backed local store, a second SQLite file standing
in for the remote backend, and a caller signed in as driver D1."""
import pytest

from gts.auth import StaticAuth
from gts.local_store import LocalStore
from gts.parcels import ParcelService
from gts.remote import RemoteStore
from gts.sync import SyncReconciler
from gts.users import UserService
from gts.utils import ReferenceGenerator


@pytest.fixture
def local(tmp_path) -> LocalStore:
    return LocalStore(f"sqlite:///{tmp_path / 'local.db'}")


@pytest.fixture
def remote(tmp_path) -> RemoteStore:
    return RemoteStore(f"sqlite:///{tmp_path / 'remote.db'}")


@pytest.fixture
def offline() -> RemoteStore:
    return RemoteStore("")


@pytest.fixture
def auth() -> StaticAuth:
    return StaticAuth("D1", {"full_name": "Musa Bello", "vehicle_number": "LAG-123-XY"})


@pytest.fixture
def make_service(local, auth):
    """Build a ParcelService against the given remote (offline by default)."""
    def _make(remote=None, caller=auth):
        remote = remote or RemoteStore("")
        return ParcelService(local, remote, caller, ReferenceGenerator(local), UserService(local, remote))
    return _make


@pytest.fixture
def reconciler(local, remote) -> SyncReconciler:
    return SyncReconciler(local, remote, interval=0.05)


@pytest.fixture
def sender() -> dict:
    return {"name": "Adaeze Okafor", "address": "12 Marina, Lagos", "contact": "+234 801 234 5678"}


@pytest.fixture
def receiver() -> dict:
    return {"name": "Ibrahim Sani", "address": "4 Ahmadu Bello Way, Kano", "contact": "+234 803 000 1111"}


@pytest.fixture
def laptop() -> dict:
    return {"name": "Laptop", "category": "electronics", "value": "200000", "weight": "5"}


@pytest.fixture
def driver_user() -> dict:
    return {
        "id": "D1",
        "phone": "+234 802 555 0101",
        "full_name": "Musa Bello",
        "role": "driver",
        "vehicle_number": "KAN-555-AB",
        "vin_number": "1HGCM82633A004352",
        "vehicle_insurance_number": "INS-88812",
        "driver_nin": "12345678901",
        "driver_photo": "aGVsbG8=",
        "license_photo": "d29ybGQ=",
    }
