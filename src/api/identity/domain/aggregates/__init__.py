"""Domain aggregates for the Identity context.

Aggregates are the core business objects containing state and business logic.
They enforce invariants and business rules without depending on infrastructure.
"""

from identity.domain.aggregates.affiliation_code import AffiliationCodeEntry
from identity.domain.aggregates.identity import Identity

__all__ = [
    "AffiliationCodeEntry",
    "Identity",
]
