"""Constants for call routing, urgency and business hours."""

# Speech at the main menu that routes to Sales
SALES_INDICATORS = [
    "sales",
    "estimate",
    "inspection",
    "roof replacement",
]

# Speech at the main menu that routes to Service
SERVICE_INDICATORS = [
    "service",
    "leak",
    "repair",
    "storm",
]

# Keypad choices at the main menu; anything else goes to Billing
SALES_DIGIT = "1"
SERVICE_DIGIT = "2"

# Any of these in a transcribed issue or message marks the call Urgent
URGENT_INDICATORS = [
    "leak",
    "leaking",
    "storm",
    "storm damage",
    "emergency",
    "tarp",
    "ceiling wet",
    "water coming in",
    "collapse",
    "sagging roof",
]

# Office hours: Monday (0) to Friday (4), 7:00 up to but not including 17:00
BUSINESS_TIMEZONE = "America/New_York"
BUSINESS_DAYS = range(0, 5)
OPENING_HOUR = 7.0
CLOSING_HOUR = 17.0

# US phone numbers are requested as exactly this many keypad digits
PHONE_DIGITS = 10
