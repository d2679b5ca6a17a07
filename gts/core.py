# gts/core.py
from dataclasses import dataclass

from .auth import StaticAuth
from .config import Settings
from .local_store import LocalStore
from .parcels import ParcelService
from .remote import RemoteStore
from .sync import SyncReconciler
from .users import UserService
from .utils import ReferenceGenerator


@dataclass
class Services:
    """Everything the core needs, built once per process from Settings."""
    settings: Settings
    local: LocalStore
    remote: RemoteStore
    references: ReferenceGenerator
    users: UserService
    sync: SyncReconciler

    def parcel_service(self, auth) -> ParcelService:
        return ParcelService(self.local, self.remote, auth, self.references, self.users)

    def parcels_for(self, caller_id: str | None, metadata: dict | None = None) -> ParcelService:
        return self.parcel_service(StaticAuth(caller_id, metadata))


def build_services(settings: Settings | None = None) -> Services:
    settings = settings or Settings.from_env()
    local = LocalStore(settings.local_db_url)
    remote = RemoteStore(settings.remote_db_url)
    return Services(
        settings=settings,
        local=local,
        remote=remote,
        references=ReferenceGenerator(local, settings.reference_prefix, settings.counter_start),
        users=UserService(local, remote),
        sync=SyncReconciler(local, remote, interval=settings.sync_interval),
    )
