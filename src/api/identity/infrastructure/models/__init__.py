"""SQLAlchemy ORM models for the Identity bounded context.

These models map to database tables and are used by repository implementations.
"""

from identity.infrastructure.models.affiliation_code import AffiliationCodeModel
from identity.infrastructure.models.identity import IdentityModel

__all__ = [
    "AffiliationCodeModel",
    "IdentityModel",
]
