"""AffiliationCodeEntry aggregate for the Identity context."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime

from identity.domain.value_objects import AffiliationCode, Email, IdentityId
from identity.ports.exceptions import AffiliationCodeAlreadyUsedError

_GENERATED_CODE_ALPHABET = string.ascii_uppercase + string.digits
_GENERATED_CODE_LENGTH = 8


@dataclass
class AffiliationCodeEntry:
    """A single-use affiliation code issued to a prospective primary account.

    Entries live in the affiliation code registry. A registered, unused
    code grants the primary role once; registering with it marks it used
    by the new identity.
    """

    code: AffiliationCode
    owner_email: Email
    created_at: datetime
    is_used: bool = False
    used_by: IdentityId | None = None
    used_at: datetime | None = None

    @classmethod
    def create(cls, code: AffiliationCode, owner_email: Email) -> AffiliationCodeEntry:
        """Factory method for a new, unused registry entry."""
        return cls(code=code, owner_email=owner_email, created_at=datetime.now(UTC))

    @staticmethod
    def generate_code() -> AffiliationCode:
        """Generate a random code suitable for a new entry."""
        return AffiliationCode(
            "".join(
                secrets.choice(_GENERATED_CODE_ALPHABET)
                for _ in range(_GENERATED_CODE_LENGTH)
            )
        )

    @property
    def is_available(self) -> bool:
        return not self.is_used

    def mark_used(self, identity_id: IdentityId) -> None:
        """Record that an identity registered with this code.

        Raises:
            AffiliationCodeAlreadyUsedError: If the code was already used
        """
        if self.is_used:
            raise AffiliationCodeAlreadyUsedError(
                f"Affiliation code {self.code.value} has already been used"
            )
        self.is_used = True
        self.used_by = identity_id
        self.used_at = datetime.now(UTC)
