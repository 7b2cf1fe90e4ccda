"""
Ledger Modules.

Domain layers over the Ledger Kernel.  Each module contains:
- Domain models (frozen dataclasses)
- Pure helpers (the arithmetic)
- ORM persistence models
- A service facade over the ``LedgerStore``

Modules:
- Loans: employee loans, payments, deduction eligibility
- Payroll: employees, payslips, ledger expense linking
"""
