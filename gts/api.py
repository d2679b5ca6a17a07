# gts/api.py
import csv
import io
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .core import Services, build_services
from .errors import GoodsTrackingError
from .parcels import ParcelService
from .qr import render_qr_png
from .schemas import Item, Party, User

router = APIRouter()


def get_services(request: Request) -> Services:
    services = request.app.state.services
    if services is None:
        services = request.app.state.services = build_services()
    return services


def get_parcel_service(request: Request,
                       x_caller_id: Optional[str] = Header(default=None)) -> ParcelService:
    return get_services(request).parcels_for(x_caller_id)


# Pydantic input models
class ParcelIn(BaseModel):
    sender: Party
    receiver: Party
    items: List[Item]
    driver_id: str


class StatusIn(BaseModel):
    status: str


class ScanIn(BaseModel):
    payload: str


# ---------------------------
# Users
# ---------------------------
@router.post("/api/users")
def register_user(user: User, services: Services = Depends(get_services)):
    return services.users.register_user(user)


@router.get("/api/users")
def list_users(role: Optional[str] = Query(None, pattern="^(driver|official)$"),
               services: Services = Depends(get_services)):
    return services.users.list_users(role)


# ---------------------------
# Parcels
# ---------------------------
@router.post("/api/parcels")
def create_parcel(p: ParcelIn, parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.create_parcel(p.sender, p.receiver, p.items, p.driver_id)


@router.get("/api/parcels")
def list_parcels(parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.list_parcels()


@router.post("/api/parcels/scan")
def scan_parcel(body: ScanIn, parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.get_parcel_by_qr(body.payload)


@router.get("/api/parcels/by-reference/{reference}")
def get_parcel_by_reference(reference: str, parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.get_parcel_by_reference(reference)


@router.get("/api/parcels/{parcel_id}")
def get_parcel(parcel_id: str, parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.get_parcel_by_id(parcel_id)


@router.get("/api/drivers/{driver_id}/parcels")
def driver_parcels(driver_id: str, parcels: ParcelService = Depends(get_parcel_service)):
    # newest first for the driver's history screen
    return sorted(parcels.get_parcels_by_driver(driver_id), key=lambda p: p.created_at, reverse=True)


@router.post("/api/parcels/{reference}/acknowledge")
def acknowledge_parcel(reference: str, parcels: ParcelService = Depends(get_parcel_service)):
    p = parcels.acknowledge_parcel(reference)
    return {"ok": True, "reference_number": p.reference_number, "status": p.status}


@router.post("/api/parcels/{reference}/deliver")
def deliver_parcel(reference: str, parcels: ParcelService = Depends(get_parcel_service)):
    p = parcels.mark_delivered(reference)
    return {"ok": True, "reference_number": p.reference_number, "status": p.status}


@router.post("/api/parcels/{reference}/status")
def update_status(reference: str, body: StatusIn, parcels: ParcelService = Depends(get_parcel_service)):
    p = parcels.update_parcel_status(reference, body.status)
    return {"ok": True, "reference_number": p.reference_number, "status": p.status}


@router.get("/api/parcels/{reference}/qr")
def parcel_qr(reference: str, parcels: ParcelService = Depends(get_parcel_service)):
    record = parcels.get_qr_code(reference)
    return {"record": record, "image": render_qr_png(record.qr_data)}


# ---------------------------
# Sync and reports
# ---------------------------
@router.post("/api/sync/push")
def sync_push(services: Services = Depends(get_services)):
    return services.sync.push_all()


@router.post("/api/sync/pull")
def sync_pull(services: Services = Depends(get_services)):
    return services.sync.pull_all()


@router.get("/api/stats")
def stats(parcels: ParcelService = Depends(get_parcel_service)):
    return parcels.get_stats()


@router.get("/api/reports/export")
def export_report(fmt: str = Query("csv", pattern="^(csv|xlsx)$"),
                  parcels: ParcelService = Depends(get_parcel_service)):
    rows = []
    for p in sorted(parcels.list_parcels(), key=lambda p: p.created_at):
        docs = p.documents.bill_of_lading if p.documents else None
        rows.append({
            "id": p.id,
            "reference_number": p.reference_number,
            "driver_id": p.driver_id,
            "status": p.status,
            "sender_name": p.sender.name,
            "receiver_name": p.receiver.name,
            "items": len(p.items),
            "total_value": docs.total_value if docs else None,
            "total_weight": docs.total_weight if docs else None,
            "created_at": p.created_at,
        })

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=rows[0].keys() if rows else ["id", "reference_number"])
        writer.writeheader()
        if rows:
            writer.writerows(rows)
        return Response(content=buffer.getvalue(), media_type="text/csv",
                        headers={"Content-Disposition": 'attachment; filename="parcel_report.csv"'})
    df = pd.DataFrame(rows)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="parcels")
    buffer.seek(0)
    return Response(content=buffer.read(),
                    media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    headers={"Content-Disposition": 'attachment; filename="parcel_report.xlsx"'})


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(title="Goods Tracking API")
    app.state.services = services

    @app.exception_handler(GoodsTrackingError)
    def handle_core_error(request: Request, exc: GoodsTrackingError):
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    app.include_router(router)
    return app


# services are built from GTS_* settings on the first request
app = create_app()
