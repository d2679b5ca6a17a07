# gts/qr.py
"""QR codes for parcels.

The code encodes the reference number, so scanning it is the same as typing
the reference in. Older payloads carried a small JSON object instead; both
forms are accepted when parsing.
"""
import base64
import io
import json

from qrcode import QRCode

from .errors import InvalidInput
from .schemas import Parcel, QRRecord
from .utils import stable_id


def build_qr_payload(parcel: Parcel) -> str:
    return parcel.reference_number


def parse_qr_payload(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise InvalidInput("empty QR payload")
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InvalidInput(f"unreadable QR payload: {e}") from e
        reference = data.get("reference_number") or data.get("referenceNumber")
        if not reference:
            raise InvalidInput("QR payload has no reference number")
        return str(reference).strip()
    return text


def render_qr_png(payload: str) -> str:
    """Render the payload as a PNG data URL."""
    qr = QRCode(box_size=4, border=2)
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    qr_b64 = base64.b64encode(bio.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{qr_b64}"


def make_qr_record(parcel: Parcel) -> QRRecord:
    return QRRecord(
        id=stable_id("qr", parcel.id),
        parcel_id=parcel.id,
        reference_number=parcel.reference_number,
        qr_data=build_qr_payload(parcel),
        created_at=parcel.created_at,
    )
