"""
Centralized configuration: edit paths, windows and defaults here.
"""

import os

# Local workbook used when Google Sheets is not configured
WORKBOOK_PATH = os.environ.get("AGENCY_WORKBOOK", "agency.xlsx")

LOG_LEVEL = os.environ.get("AGENCY_LOG_LEVEL", "INFO")

# Collection names in the key-value store (one worksheet each)
COLLECTIONS = {
    "clients":  "clients",
    "bookings": "bookings",
    "alerts":   "alerts",
    "config":   "config",
}

# Check-in windows, in days until check-in
URGENT_WINDOW_DAYS = 7         # 2..7  → urgent (red)
INFO_WINDOW_DAYS = 30          # 8..30 → informational (green)
TRAVELLING_WINDOW_DAYS = 30    # "clients travelling" view

# Loyalty tier thresholds on the number of bookings (highest first)
LOYALTY_THRESHOLDS = [
    ("Diamond", 8),
    ("Gold",    4),
    ("Silver",  2),
]

# Months shown in the "monthly evolution" chart
EVOLUTION_MONTHS = 6

# Defaults for a fresh agency configuration
DEFAULT_AGENCY = {
    "agency_name":            "My Travel Agency",
    "default_commission_pct": 10.0,
    "inactivity_days":        180,
    "brand_colors":           {"primary": "#1e40af", "secondary": "#f59e0b"},
    "origins":                ["Instagram", "Referral", "Google", "Walk-in", "WhatsApp"],
    "suppliers":              ["CVC", "Decolar", "Azul Viagens", "Latam Travel"],
    "service_types":          ["Air", "Hotel", "Package", "Cruise", "Insurance"],
    "payment_methods":        ["Credit card", "Pix", "Bank transfer", "Cash"],
    "monthly_value_target":   None,
    "monthly_commission_target": None,
}
