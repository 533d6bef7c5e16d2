"""
Smart Water Dispenser — simulation core and HTTP host.

Subpackages:
- dispenser.engine: level/ticking state machine and usage ledger
- dispenser.notifications: event -> notification mapping
- dispenser.storage: persisted user settings
- dispenser.api: FastAPI host
"""

__version__ = "1.0.0"
