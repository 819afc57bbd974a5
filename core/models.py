"""
Data models: Client, Booking (sold travel service), Alert and Configuration.

Dates are kept as ISO text exactly as stored ("2024-06-10" or a full
timestamp); core.rules.parse_date turns them into `date` when needed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from config import DEFAULT_AGENCY


class LoyaltyTier(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    DIAMOND = "Diamond"


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    PENDING = "Pending"
    COMPLETED = "Completed"


class AlertType(str, Enum):
    CHECKIN_TODAY = "checkin-today"
    CHECKIN_TOMORROW = "checkin-tomorrow"
    CHECKIN_SOON = "checkin-soon"
    CLIENT_INACTIVE = "client-inactive"
    GOAL_REACHED = "goal-reached"


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(str, Enum):
    """Urgency of a check-in, from the number of days remaining."""
    TODAY = "today"         # d == 0
    TOMORROW = "tomorrow"   # d == 1
    URGENT = "urgent"       # 2 <= d <= 7
    INFO = "info"           # 8 <= d <= 30
    PAST = "past"           # d < 0
    NONE = "none"           # d > 30


@dataclass(frozen=True)
class PurchaseHistory:
    count: int = 0
    total_value: float = 0.0


@dataclass(frozen=True)
class Client:
    """A paying client of the agency."""
    id: str
    name: str               # payer name
    tax_id: str = ""        # CPF
    birth_date: str = ""
    phone: str = ""
    email: str = ""
    origin: str = ""        # acquisition channel: "Instagram" | "Referral" | ...
    loyalty_tier: LoyaltyTier = LoyaltyTier.BRONZE
    purchase_history: PurchaseHistory = field(default_factory=PurchaseHistory)
    active: bool = False    # derived, owned by the reconciler
    last_purchase_date: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Booking:
    """A sold travel service (flight, hotel, package) tied to a paying client."""
    id: str
    client_id: str
    purchase_date: str
    supplier: str           # operator: "CVC" | "Decolar" | ...
    checkin_date: str
    sale_value: float
    commission_pct: float
    companions: List[str] = field(default_factory=list)
    reservation_code: str = ""
    service_type: str = ""  # "Air" | "Hotel" | "Package" | ...
    checkout_date: Optional[str] = None
    airline: Optional[str] = None
    flight_code: Optional[str] = None
    destination: str = ""
    hotel: Optional[str] = None
    payment_method: str = ""
    commission_amount: float = 0.0          # calculated from sale_value and commission_pct
    manual_commission: Optional[float] = None
    notes: str = ""
    status: BookingStatus = BookingStatus.CONFIRMED
    checkin_alert: str = ""                 # derived label, owned by the reconciler
    attachments: List[str] = field(default_factory=list)
    external_ref: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Alert:
    """A notification shown in the alerts view."""
    id: str
    type: AlertType
    title: str
    description: str
    priority: AlertPriority
    read: bool = False
    created_at: str = ""
    expires_at: Optional[str] = None
    booking_id: Optional[str] = None
    client_id: Optional[str] = None


@dataclass(frozen=True)
class Configuration:
    """Agency-wide settings; read-only for the core."""
    agency_name: str = DEFAULT_AGENCY["agency_name"]
    default_commission_pct: float = DEFAULT_AGENCY["default_commission_pct"]
    inactivity_days: int = DEFAULT_AGENCY["inactivity_days"]
    brand_colors: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_AGENCY["brand_colors"])
    )
    origins: List[str] = field(default_factory=lambda: list(DEFAULT_AGENCY["origins"]))
    suppliers: List[str] = field(default_factory=lambda: list(DEFAULT_AGENCY["suppliers"]))
    service_types: List[str] = field(default_factory=lambda: list(DEFAULT_AGENCY["service_types"]))
    payment_methods: List[str] = field(default_factory=lambda: list(DEFAULT_AGENCY["payment_methods"]))
    monthly_value_target: Optional[float] = None
    monthly_commission_target: Optional[float] = None
