"""
Monthly Closing - Source Package

Freezes a user's monthly financial period into an immutable, auditable
snapshot, gated by a readiness checklist, with an exceptional
reason-logged reopen path.

DESIGN PRINCIPLES:
1. Closing and reopening are explicit user actions - never automatic
2. A closed period shows frozen numbers, not live data
3. No silent "all clear" when a data source is down
4. Every close/reopen leaves exactly one audit entry
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Accountant Team"
