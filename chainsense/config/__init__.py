from __future__ import annotations

"""
chainsense.config is a PACKAGE.

- Company identity lives in: chainsense.config.company
- Runtime settings live in: chainsense.settings
"""

from .company import company_context

__all__ = ["company_context"]
