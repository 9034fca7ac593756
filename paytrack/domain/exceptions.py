"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidArgument(DomainException):
    """Malformed or out-of-range input, rejected before any write"""

    pass


class NotFound(DomainException):
    """Referenced obligation, entry or budget item is missing or soft-deleted"""

    def __init__(self, kind: str, identifier: int):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class OverpaymentRejected(DomainException):
    """Payment would push paid amount above the obligation total"""

    def __init__(self, obligation_id: int, amount: Decimal, max_acceptable: Decimal):
        super().__init__(
            f"Payment of {amount} exceeds outstanding balance {max_acceptable} "
            f"on obligation {obligation_id}"
        )
        self.obligation_id = obligation_id
        self.amount = amount
        self.max_acceptable = max_acceptable


class ConcurrentModification(DomainException):
    """Optimistic check failed because another writer got there first; safe to retry"""

    pass


class ConversionError(DomainException):
    """Budget item cannot be converted (already materialized)"""

    pass
