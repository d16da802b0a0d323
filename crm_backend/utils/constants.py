"""
Domain constants shared by schemas, services and the valuation layer.

Values mirror the CHECK constraints and column defaults in the database.
"""

from decimal import Decimal

# Team roles (users.role CHECK constraint)
USER_ROLES = ("CEO", "CGO", "CTO")

# Client pipeline stages, in funnel order
CLIENT_STAGES = (
    "prospect",
    "connected",
    "replied",
    "meeting",
    "proposal",
    "closed",
    "lost",
)

# Deal calculation defaults (clients.per_car_value / clients.setup_fee)
DEFAULT_PER_CAR_VALUE = Decimal("335.00")
DEFAULT_SETUP_FEE = Decimal("96.00")
DEFAULT_NUMBER_OF_CARS = 1
DEFAULT_COMMITMENT_LENGTH = 12
COMMITMENT_LENGTHS = (12, 24, 36)

# Payments and expenses (profitability inputs)
PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUSES = ("pending", "completed", "failed", "cancelled")
PAYMENT_TYPE_RECEIVED = "received"
PAYMENT_TYPES = ("received", "sent")
PAYMENT_METHODS = ("bank_transfer", "credit_card", "paypal", "stripe", "cash", "check")

EXPENSE_STATUS_PENDING = "pending"
EXPENSE_STATUS_APPROVED = "approved"
EXPENSE_STATUSES = ("pending", "approved", "rejected")
DEFAULT_EXPENSE_CATEGORY = "other"

# Allowed status changes; completed payments and approved expenses are final
PAYMENT_STATUS_TRANSITIONS = {
    "pending": ("completed", "failed", "cancelled"),
    "failed": ("pending", "cancelled"),
    "completed": (),
    "cancelled": (),
}
EXPENSE_STATUS_TRANSITIONS = {
    "pending": ("approved", "rejected"),
    "rejected": ("pending",),
    "approved": (),
}

# Display settings (user_settings)
SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "JPY", "CAD", "AUD")
SUPPORTED_DATE_FORMATS = ("MM/dd/yyyy", "dd/MM/yyyy", "yyyy-MM-dd")
SUPPORTED_TIME_FORMATS = ("12h", "24h")
DEFAULT_USER_SETTINGS = {
    "timezone": "America/New_York",
    "currency": "USD",
    "date_format": "MM/dd/yyyy",
    "time_format": "12h",
}

DEFAULT_TASK_GROUP_COLOR = "#3B82F6"
