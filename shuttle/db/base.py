# Import all models so Base.metadata is complete (Alembic autogenerate, test create_all)
from shuttle.db.session import Base  # noqa: F401
from shuttle.models.user import User  # noqa: F401
from shuttle.models.route import Route  # noqa: F401
from shuttle.models.vehicle import Vehicle  # noqa: F401
from shuttle.models.schedule import Schedule  # noqa: F401
from shuttle.models.departure import Departure  # noqa: F401
from shuttle.models.pricing_tier import PricingTier  # noqa: F401
from shuttle.models.booking import Booking  # noqa: F401
from shuttle.models.passenger import Passenger  # noqa: F401
from shuttle.models.setting import Setting  # noqa: F401
from shuttle.models.audit_log import AuditLog  # noqa: F401
from shuttle.models.email_log import EmailLog  # noqa: F401
