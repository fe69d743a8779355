"""Fraud Workflow Client.

Client-side synchronization layer for the fraud analyst workflow:
- Keep a transaction's review, notes and case in step with the backend
- Apply analyst actions optimistically and roll back on rejection
- Cancel superseded requests so only the newest response lands
- Derive which workflow actions the signed-in user may attempt
"""

__version__ = "0.1.0"
