"""
audit_chain.py - Hash-linked audit ledger.

One row per audit run, in append order. A single global chain spans every
repository. The unique constraint on previous_hash makes a fork impossible:
two writers that read the same head cannot both commit.
"""

from sqlalchemy import Column, Integer, String

from phiguard.database import Base

from .append_only import AppendOnly, attach_mutation_trigger


class AuditChainEntry(AppendOnly, Base):
    __tablename__ = "audit_chain_entries"

    sequence = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(String(40), nullable=False)  # RFC 3339 UTC, hashed verbatim
    data_hash = Column(String(64), nullable=False)
    previous_hash = Column(String(64), nullable=False, unique=True)
    entry_hash = Column(String(64), nullable=False, unique=True, index=True)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "timestamp": self.timestamp,
            "data_hash": self.data_hash,
            "previous_hash": self.previous_hash,
            "entry_hash": self.entry_hash,
        }


attach_mutation_trigger(AuditChainEntry.__table__)
