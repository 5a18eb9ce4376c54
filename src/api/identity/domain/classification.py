"""Role classification from affiliation codes.

Role is a pure function of the affiliation code at the moment it is
assigned. Everything in this module is free of I/O; registry lookups
happen in the application layer before a code reaches these functions.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from identity.domain.value_objects import AffiliationCode, Role

DEFAULT_PRIMARY_CODE = "TUTOR"

PRIMARY_INSTITUTION = "Main institution"
UNSPECIFIED_INSTITUTION = "No specific institution"
NO_INSTITUTION = "No institution"

PREMIUM_TIER = "premium"
BASIC_TIER = "basic"


@dataclass(frozen=True)
class AffiliationDescriptor:
    """Human-readable institutional context of a classified account."""

    institution_name: str
    tier: str


@dataclass(frozen=True)
class Classification:
    """A role together with the affiliation code that produced it.

    Identities only ever receive a role through a Classification, which
    keeps role and code from drifting apart.
    """

    role: Role
    affiliation_code: AffiliationCode | None
    descriptor: AffiliationDescriptor

    @property
    def is_primary(self) -> bool:
        return self.role == Role.PRIMARY


def describe_affiliation(role: Role, code: AffiliationCode | None) -> AffiliationDescriptor:
    """Build the descriptor shown for an account of the given role and code."""
    if role == Role.PRIMARY:
        return AffiliationDescriptor(institution_name=PRIMARY_INSTITUTION, tier=PREMIUM_TIER)
    if code is None:
        return AffiliationDescriptor(institution_name=NO_INSTITUTION, tier=BASIC_TIER)
    return AffiliationDescriptor(institution_name=UNSPECIFIED_INSTITUTION, tier=BASIC_TIER)


def classify_affiliation(
    code: AffiliationCode | None,
    primary_codes: Iterable[str] = (DEFAULT_PRIMARY_CODE,),
) -> Classification:
    """Classify an affiliation code.

    Codes listed in ``primary_codes`` map to the primary role. Every other
    valid code, and the absence of a code, maps to the secondary role.

    Args:
        code: Normalized affiliation code, or None when none was declared
        primary_codes: Codes that grant the primary role

    Returns:
        Classification carrying the role, the code and its descriptor
    """
    normalized = {c.strip().upper() for c in primary_codes}
    role = Role.PRIMARY if code is not None and code.value in normalized else Role.SECONDARY
    return Classification(
        role=role,
        affiliation_code=code,
        descriptor=describe_affiliation(role, code),
    )
