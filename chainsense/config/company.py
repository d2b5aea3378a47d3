# chainsense/config/company.py
from __future__ import annotations

"""
Single source of truth for Chain Sense company identity.

Shared by the invoice PDF and the billing emails so both print the same
letterhead.
"""

COMPANY_NAME = "Chain Sense"
COMPANY_TAGLINE = "Supply Chain Management Suite"

# Single display line (PDF-friendly)
COMPANY_ADDRESS = "1st Floor, Tech Park Campus, Bengaluru, India"

COMPANY_EMAIL = "support@chainsense.io"
BILLING_EMAIL = "billing@chainsense.io"
COMPANY_PHONE = "+91 98765 43210"

COMPANY_WEBSITE = "www.chainsense.io"


def company_context() -> dict:
    """Template/PDF context for the letterhead."""
    return {
        "COMPANY_NAME": COMPANY_NAME,
        "COMPANY_TAGLINE": COMPANY_TAGLINE,
        "COMPANY_ADDRESS": COMPANY_ADDRESS,
        "COMPANY_EMAIL": COMPANY_EMAIL,
        "BILLING_EMAIL": BILLING_EMAIL,
        "COMPANY_PHONE": COMPANY_PHONE,
        "COMPANY_WEBSITE": COMPANY_WEBSITE,
    }
