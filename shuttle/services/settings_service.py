from sqlalchemy.orm import Session
from shuttle.core.config import settings
from shuttle.core.errors import ValidationFailed
from shuttle.models.setting import Setting

EXTRA_LUGGAGE_FEE = "extraLuggageFee"
PET_FEE = "petFee"

def _get_int(db: Session, key: str, default: int) -> int:
    s = db.get(Setting, key)
    if s and s.int_value is not None:
        return int(s.int_value)
    return default

def _set_int(db: Session, key: str, value: int) -> int:
    s = db.get(Setting, key)
    if not s:
        s = Setting(key=key, int_value=int(value), str_value=None)
        db.add(s)
    else:
        s.int_value = int(value)
    return int(value)

def get_fees(db: Session) -> dict:
    return {
        "extraLuggage": _get_int(db, EXTRA_LUGGAGE_FEE, settings.DEFAULT_EXTRA_LUGGAGE_FEE),
        "pets": _get_int(db, PET_FEE, settings.DEFAULT_PET_FEE),
    }

def set_fees(db: Session, extra_luggage: int | None = None, pets: int | None = None) -> dict:
    """Store fee settings; None leaves a fee unchanged. Caller commits."""
    for name, value in (("extraLuggage", extra_luggage), ("pets", pets)):
        if value is not None and value < 0:
            raise ValidationFailed(f"{name} fee must be >= 0")
    if extra_luggage is not None:
        _set_int(db, EXTRA_LUGGAGE_FEE, extra_luggage)
    if pets is not None:
        _set_int(db, PET_FEE, pets)
    db.flush()
    return get_fees(db)
