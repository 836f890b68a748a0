"""
Shared trading core: ledger models and collaborator interfaces.

This package hosts the domain types used by the ledger, session and
broadcast services, and the contracts for external collaborators such as
quote lookup.
"""
