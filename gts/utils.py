# gts/utils.py
import logging
import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)

COUNTER_KEY = "parcel_counter"

_NON_NUMERIC = re.compile(r"[^0-9.]")

# (upper bound on declared value, assumed density in kg/m3)
DENSITY_BRACKETS = ((10_000, 75), (100_000, 150))
DEFAULT_DENSITY = 250


def format_reference(prefix: str, seq: int, datestr: str) -> str:
    return f"{prefix}-{datestr}-{seq:04d}"


class ReferenceGenerator:
    """Builds PREFIX-YYYYMMDD-NNNN reference numbers from a persisted counter.

    The counter lives in the injected local store; it is bumped exactly once
    per generated number and never reset, so numbers keep growing across days.
    """

    def __init__(self, store, prefix: str = "GTS", counter_start: int = 1000):
        self.store = store
        self.prefix = prefix
        self.counter_start = counter_start

    def next_reference_number(self, today: date | None = None) -> str:
        if today is None:
            today = date.today()
        seq = self.store.increment(COUNTER_KEY, start=self.counter_start)
        if seq is None:
            # handing out a number we could not persist would repeat it later
            raise StorageUnavailable("parcel counter could not be persisted")
        return format_reference(self.prefix, seq, today.strftime("%Y%m%d"))


def new_record_id() -> str:
    return str(uuid.uuid4())


# fixed namespace: ids derived from a parcel id are the same on every device
_ID_NAMESPACE = uuid.UUID("5b0f3c1e-6a0e-4b8f-9a41-7d2f1f0c9e21")


def stable_id(kind: str, parent_id: str) -> str:
    return str(uuid.uuid5(_ID_NAMESPACE, f"{kind}:{parent_id}"))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


def parse_amount(text) -> Decimal:
    """Parse a currency/unit string ("₦200,000", "5 Kg") into a Decimal.

    Anything that does not parse counts as zero.
    """
    if text is None:
        return Decimal(0)
    cleaned = _NON_NUMERIC.sub("", str(text))
    if not cleaned:
        return Decimal(0)
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)


def calculate_cubic_volume(weight_kg, value) -> float | None:
    """Estimate an item's volume in m3 from its weight and declared value.

    The item's total declared value picks a density bracket (cheap goods
    are bulky, valuable goods are compact). This is deliberately the total
    value, not value per kg as the old mobile client computed it: per kg,
    10 kg declared at 50,000 falls in the 75 kg/m3 bracket (0.1333 m3)
    instead of the expected 0.0667 m3. Returns None when either input is
    not positive.
    """
    try:
        weight_kg = float(weight_kg)
        value = float(value)
    except (TypeError, ValueError):
        return None
    if weight_kg <= 0 or value <= 0:
        return None
    density = DEFAULT_DENSITY
    for upper, bracket in DENSITY_BRACKETS:
        if value < upper:
            density = bracket
            break
    return round(weight_kg / density, 4)


def cubic_volume_text(weight, value) -> str | None:
    """calculate_cubic_volume over the raw form strings, formatted to 4 places."""
    weight_kg = parse_amount(weight)
    amount = parse_amount(value)
    volume = calculate_cubic_volume(weight_kg, amount)
    if volume is None:
        return None
    return f"{volume:.4f}"
