"""Transfer read service."""

from typing import Optional
from orgledger.database.base import Database
from orgledger.domain.entities import Posting, Transfer
from orgledger.domain.errors import EntityNotFound


class TransferService:
    """Queries over transfers. Creating and deleting them is an orchestrator recipe."""

    def __init__(self, db: Database):
        self.db = db

    def get_transfer(self, transfer_id: str) -> Optional[Transfer]:
        """Get transfer by ID."""
        return self.db.get_transfer(transfer_id)

    def list_transfers(self, account_id: Optional[str] = None) -> list[Transfer]:
        """List transfers, newest first, optionally touching one account."""
        return self.db.list_transfers(account_id=account_id)

    def legs(self, transfer_id: str) -> list[Posting]:
        """The source and destination postings of a transfer.

        Raises:
            EntityNotFound: If transfer not found
        """
        if self.db.get_transfer(transfer_id) is None:
            raise EntityNotFound("Transfer", transfer_id)
        return self.db.list_postings(transfer_id=transfer_id)
