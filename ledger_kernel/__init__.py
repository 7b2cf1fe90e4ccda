"""
Ledger Kernel

Shared foundation for the payroll ledger:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- SQLAlchemy base classes, engine and session scope
- Injectable clock
- The Ledger Store contract and its SQLAlchemy implementation
"""

__version__ = "0.1.0"
