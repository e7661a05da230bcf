"""libtrack - Library catalog and borrowing tracker

This package contains the core application modules including:
- Catalog and roster stores (catalog.py, roster.py)
- Per-user borrow ledgers (ledger.py)
- Borrow/return state machine (borrowing.py)
- Library facade used by the CLI (library.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
