import os
from pathlib import Path

from dotenv import load_dotenv

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")

# Spreadsheet data service
AIRTABLE_API_KEY = os.getenv("AIRTABLE_API_KEY")
AIRTABLE_BASE_ID = os.getenv("AIRTABLE_BASE_ID")
AIRTABLE_API_URL = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")

# Table names in the base
TABLES = {
    "events": "Events",
    "teams": "Teams",
    "charter": "Charter",  # Schools
    "students": "Students",  # Team members
    "turn_ins": "Turn-Ins",
    "divisions": "Divisions",
    "categories": "Categories",
    "states": "States",
    "users": "Users",
    "audit_log": "Audit Log",
}

# Identity provider
CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY")
CLERK_API_URL = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1")
CLERK_JWT_KEY = os.getenv("CLERK_JWT_KEY")
CLERK_JWT_ALGORITHMS = [
    alg.strip() for alg in os.getenv("CLERK_JWT_ALGORITHMS", "RS256").split(",") if alg.strip()
]
CLERK_WEBHOOK_SECRET = os.getenv("CLERK_WEBHOOK_SECRET")
SESSION_COOKIE_NAME = "__session"

# "Today" for event status is evaluated in this zone
EVENT_TIMEZONE = os.getenv("EVENT_TIMEZONE", "America/Chicago")

# Competition defaults
DEFAULT_DIVISION = "HSBBQ"
DEFAULT_CATEGORIES = ["Brisket", "Pork", "Chicken"]
OVERALL_CATEGORY = "Overall"
DEFAULT_EVENT_LIMIT = 100

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Templates
TEMPLATES_DIR = BASE_DIR / "smokeboard" / "templates"
