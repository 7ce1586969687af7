"""
Tamper-evident audit trail helpers for endorsement requests.

Every audit entry stores a SHA-256 hash computed from its own fields and
the hash of the entry before it in the same request's trail. Entries are
append-only (no update or delete path exists), so recomputing the chain is
enough to detect a row that was edited or removed out of band.
"""

import hashlib
from typing import Optional, Protocol, Sequence

from pydantic import BaseModel


class ChainedEntry(Protocol):
    id: object
    request_id: object
    sequence: int
    action: str
    performed_by: object
    performed_at: int
    ip_address: Optional[str]
    previous_hash: Optional[str]
    integrity_hash: str


class ChainVerification(BaseModel):
    status: str  # valid, empty, broken
    checked: int
    errors: list[str]


def compute_integrity_hash(
    entry_id: str,
    request_id: str,
    sequence: int,
    action: str,
    performed_by: str,
    performed_at: int,
    ip_address: Optional[str],
    previous_hash: Optional[str],
) -> str:
    """Compute SHA-256 hash chain entry for nonrepudiation."""
    payload = (
        f"{entry_id}|{request_id}|{sequence}|{action}"
        f"|{performed_by}|{performed_at}"
        f"|{ip_address or ''}|{previous_hash or ''}"
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def hash_entry(entry: ChainedEntry) -> str:
    return compute_integrity_hash(
        str(entry.id),
        str(entry.request_id),
        entry.sequence,
        entry.action,
        str(entry.performed_by),
        entry.performed_at,
        entry.ip_address,
        entry.previous_hash,
    )


def verify_chain(entries: Sequence[ChainedEntry]) -> ChainVerification:
    """Check a request's trail, which must be given in sequence order."""
    if not entries:
        return ChainVerification(status="empty", checked=0, errors=[])

    errors: list[str] = []
    previous_hash: Optional[str] = None
    for expected_sequence, entry in enumerate(entries, start=1):
        if entry.sequence != expected_sequence:
            errors.append(f"Entry {entry.id}: sequence {entry.sequence}, expected {expected_sequence}")
        if entry.previous_hash != previous_hash:
            errors.append(f"Entry {entry.id}: previous_hash does not match preceding entry")
        if hash_entry(entry) != entry.integrity_hash:
            errors.append(f"Entry {entry.id}: integrity_hash mismatch")
        previous_hash = entry.integrity_hash

    return ChainVerification(status="broken" if errors else "valid", checked=len(entries), errors=errors)
