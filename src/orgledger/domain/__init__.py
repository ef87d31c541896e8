"""Domain layer for orgledger application.

Services live in their own modules (``orgledger.domain.ledger``,
``orgledger.domain.orchestrator``, ...) and are imported from there. The
database layer imports ``orgledger.domain.entities``, so this package does
not import any service itself.
"""
