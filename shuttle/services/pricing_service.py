"""
Price quotes.

subtotal = base * passengers + luggage fee * extra bags + pet fee * pets.
Round trips pay twice the subtotal less a 10% discount, rounded half-up to
whole units. Quotes depend only on the inputs and on the stored tiers/fees.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from shuttle.core.errors import ValidationFailed
from shuttle.models.pricing_tier import PricingTier, CUSTOMER_TYPES
from shuttle.services.settings_service import get_fees

logger = logging.getLogger(__name__)

REGULAR = "REGULAR"
DEFAULT_BASE_PRICES = {"REGULAR": 35, "STUDENT": 32, "MILITARY": 32, "LEGACY": 31}
ROUND_TRIP_DISCOUNT_PERCENT = 10


@dataclass
class Quote:
    customer_type: str
    base_price: int
    tier_id: str | None
    passenger_count: int
    extra_luggage: int
    luggage_fee: int
    pets: int
    pet_fee: int
    round_trip: bool

    @property
    def passenger_cost(self) -> int:
        return self.base_price * self.passenger_count

    @property
    def luggage_cost(self) -> int:
        return self.luggage_fee * self.extra_luggage

    @property
    def pet_cost(self) -> int:
        return self.pet_fee * self.pets

    @property
    def subtotal(self) -> int:
        return self.passenger_cost + self.luggage_cost + self.pet_cost

    @property
    def round_trip_total(self) -> int:
        return self.subtotal * 2 if self.round_trip else self.subtotal

    @property
    def savings(self) -> int:
        if not self.round_trip:
            return 0
        # half-up rounding of total * percent / 100
        return (self.round_trip_total * ROUND_TRIP_DISCOUNT_PERCENT * 2 + 100) // 200

    @property
    def total(self) -> int:
        return self.round_trip_total - self.savings

    def breakdown(self) -> dict:
        return {
            "customerType": self.customer_type,
            "basePrice": self.base_price,
            "passengerCount": self.passenger_count,
            "passengerCost": self.passenger_cost,
            "extraLuggage": self.extra_luggage,
            "luggageCost": self.luggage_cost,
            "pets": self.pets,
            "petCost": self.pet_cost,
            "subtotal": self.subtotal,
            "isRoundTrip": self.round_trip,
            "roundTripTotal": self.round_trip_total,
            "savings": self.savings,
            "total": self.total,
        }


def normalize_customer_type(customer_type: str | None) -> str:
    t = (customer_type or "").strip().upper()
    return t if t in CUSTOMER_TYPES else REGULAR


def active_tiers(db: Session) -> list[PricingTier]:
    return (
        db.query(PricingTier)
        .filter(PricingTier.active == True)  # noqa: E712
        .order_by(PricingTier.base_price.desc(), PricingTier.customer_type.asc())
        .all()
    )


def tier_to_dict(t: PricingTier) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description or "",
        "customerType": t.customer_type,
        "basePrice": t.base_price,
        "active": bool(t.active),
    }


def resolve_base_price(db: Session, customer_type: str) -> tuple[int, str | None]:
    """Active tier for the type, then the active REGULAR tier, then built-in defaults."""
    for t in (customer_type, REGULAR):
        tier = (
            db.query(PricingTier)
            .filter(PricingTier.customer_type == t, PricingTier.active == True)  # noqa: E712
            .order_by(PricingTier.created_at.asc(), PricingTier.id.asc())
            .first()
        )
        if tier is not None:
            return int(tier.base_price), tier.id
    logger.info("No active pricing tier for %s; using default base price", customer_type)
    return DEFAULT_BASE_PRICES.get(customer_type, DEFAULT_BASE_PRICES[REGULAR]), None


def build_quote(
    db: Session,
    customer_type: str | None,
    passenger_count: int,
    extra_luggage: int = 0,
    pets: int = 0,
    round_trip: bool = False,
) -> Quote:
    if passenger_count < 1:
        raise ValidationFailed("passengerCount must be >= 1")
    if extra_luggage < 0:
        raise ValidationFailed("extraLuggage must be >= 0")
    if pets < 0:
        raise ValidationFailed("pets must be >= 0")
    ctype = normalize_customer_type(customer_type)
    base, tier_id = resolve_base_price(db, ctype)
    fees = get_fees(db)
    return Quote(
        customer_type=ctype,
        base_price=base,
        tier_id=tier_id,
        passenger_count=passenger_count,
        extra_luggage=extra_luggage,
        luggage_fee=fees["extraLuggage"],
        pets=pets,
        pet_fee=fees["pets"],
        round_trip=bool(round_trip),
    )


def calculate_price(
    db: Session,
    customer_type: str | None,
    passenger_count: int,
    extra_luggage: int = 0,
    pets: int = 0,
    round_trip: bool = False,
) -> dict:
    quote = build_quote(db, customer_type, passenger_count, extra_luggage, pets, round_trip)
    return {
        "breakdown": quote.breakdown(),
        "availableTiers": [tier_to_dict(t) for t in active_tiers(db)],
        "fees": {"extraLuggage": quote.luggage_fee, "pets": quote.pet_fee},
    }
