"""Value objects for the Identity domain.

Value objects are immutable, self-validating descriptors. Each one
normalizes its input and validates it at construction time, raising
ValidationFailure on bad input, so an invalid value can never be held.
Equality is by normalized value.
"""

from __future__ import annotations

import ipaddress
import re
import secrets
from dataclasses import dataclass
from enum import StrEnum

import bcrypt
from ulid import ULID

from identity.ports.exceptions import ValidationFailure

# Work factor for credential digests. Tests lower this to keep hashing fast.
BCRYPT_ROUNDS = 12

# bcrypt only considers the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_EMAIL_MAX_LENGTH = 254

_DISPLAY_NAME_FORBIDDEN = re.compile(r"[<>\"'&]")
_DISPLAY_NAME_MIN_LENGTH = 2
_DISPLAY_NAME_MAX_LENGTH = 100

_AFFILIATION_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_AFFILIATION_CODE_MIN_LENGTH = 2
_AFFILIATION_CODE_MAX_LENGTH = 20

_EXTERNAL_ID_MAX_LENGTH = 128

_PASSWORD_MIN_LENGTH = 6
_PASSWORD_MIN_CHARACTER_CLASSES = 3

UNKNOWN = "unknown"


class Role(StrEnum):
    """Account class derived from an affiliation code.

    Never supplied directly by a caller.
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"


class AuthOrigin(StrEnum):
    """How an identity was registered or authenticated."""

    CREDENTIAL = "credential"
    EXTERNAL = "external"


class NotificationKind(StrEnum):
    """Kinds of transactional notification sent to account holders and staff."""

    REGISTRATION_WELCOME = "registration_welcome"
    STAFF_REGISTRATION_ALERT = "staff_registration_alert"
    LOGIN_ALERT = "login_alert"


@dataclass(frozen=True)
class IdentityId:
    """Identifier for an Identity aggregate.

    Uses ULID for sortability and distribution-friendly generation.
    """

    value: str

    def __str__(self) -> str:
        """Return string representation."""
        return self.value

    @classmethod
    def generate(cls) -> IdentityId:
        """Generate a new IdentityId using ULID."""
        return cls(value=str(ULID()))

    @classmethod
    def from_string(cls, value: str) -> IdentityId:
        """Create IdentityId from string value.

        Args:
            value: ULID string

        Returns:
            IdentityId instance

        Raises:
            ValidationFailure: If value is not a valid ULID
        """
        try:
            ULID.from_str(value)
        except ValueError as e:
            raise ValidationFailure(f"Invalid IdentityId: {value}") from e

        return cls(value=value)


@dataclass(frozen=True)
class Email:
    """Email address used as the natural lookup key of local accounts.

    Trimmed and lowercased; must look like ``local@domain.tld`` with no
    whitespace and be at most 254 characters long.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationFailure("Email must not be empty")

        normalized = self.value.strip().lower()
        if len(normalized) > _EMAIL_MAX_LENGTH:
            raise ValidationFailure(
                f"Email must be at most {_EMAIL_MAX_LENGTH} characters"
            )
        if not _EMAIL_PATTERN.match(normalized):
            raise ValidationFailure(f"Invalid email address: {normalized}")

        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value

    @property
    def local_part(self) -> str:
        """Part of the address before the ``@``."""
        return self.value.split("@", 1)[0]

    @property
    def domain(self) -> str:
        """Part of the address after the ``@``."""
        return self.value.split("@", 1)[1]


@dataclass(frozen=True)
class DisplayName:
    """Human name shown for an account.

    Whitespace runs collapse to a single space and the first letter of
    every word is capitalized. Markup-significant characters are rejected.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationFailure("Display name must be a string")

        trimmed = self.value.strip()
        if not (_DISPLAY_NAME_MIN_LENGTH <= len(trimmed) <= _DISPLAY_NAME_MAX_LENGTH):
            raise ValidationFailure(
                f"Display name must be between {_DISPLAY_NAME_MIN_LENGTH} and "
                f"{_DISPLAY_NAME_MAX_LENGTH} characters"
            )
        if _DISPLAY_NAME_FORBIDDEN.search(trimmed):
            raise ValidationFailure("Display name contains forbidden characters")

        collapsed = re.sub(r"\s+", " ", trimmed)
        normalized = re.sub(r"\b\w", lambda m: m.group(0).upper(), collapsed)
        object.__setattr__(self, "value", normalized)

    def __str__(self) -> str:
        return self.value

    @property
    def first_name(self) -> str:
        return self.value.split(" ")[0]

    @property
    def initials(self) -> str:
        return "".join(word[0].upper() for word in self.value.split(" "))


@dataclass(frozen=True)
class AffiliationCode:
    """Institution code presented at registration.

    Trimmed and uppercased; 2 to 20 characters from ``[A-Za-z0-9_-]``.
    Whether a code grants the primary role is decided by classification,
    not by the code itself.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValidationFailure("Affiliation code must be a string")

        trimmed = self.value.strip()
        if not (
            _AFFILIATION_CODE_MIN_LENGTH <= len(trimmed) <= _AFFILIATION_CODE_MAX_LENGTH
        ):
            raise ValidationFailure(
                f"Affiliation code must be between {_AFFILIATION_CODE_MIN_LENGTH} "
                f"and {_AFFILIATION_CODE_MAX_LENGTH} characters"
            )
        if not _AFFILIATION_CODE_PATTERN.match(trimmed):
            raise ValidationFailure(
                "Affiliation code may only contain letters, digits, '-' and '_'"
            )

        object.__setattr__(self, "value", trimmed.upper())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExternalIdentityId:
    """Subject identifier asserted by the federated identity provider."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationFailure("External identity id must not be empty")

        trimmed = self.value.strip()
        if len(trimmed) > _EXTERNAL_ID_MAX_LENGTH:
            raise ValidationFailure(
                f"External identity id must be at most {_EXTERNAL_ID_MAX_LENGTH} "
                "characters"
            )

        object.__setattr__(self, "value", trimmed)

    def __str__(self) -> str:
        return self.value


def _character_classes(plaintext: str) -> int:
    """Count how many of upper, lower, digit and symbol occur in plaintext."""
    return sum(
        (
            any(ch.isupper() for ch in plaintext),
            any(ch.islower() for ch in plaintext),
            any(ch.isdigit() for ch in plaintext),
            any(not ch.isalnum() and not ch.isspace() for ch in plaintext),
        )
    )


@dataclass(frozen=True)
class CredentialDigest:
    """Opaque bcrypt digest of an account password.

    Hashing and verification are delegated to bcrypt; this class never
    holds the plaintext.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValidationFailure("Credential digest must not be empty")

    def __repr__(self) -> str:
        return "CredentialDigest(value='***')"

    @classmethod
    def from_plaintext(cls, plaintext: str) -> CredentialDigest:
        """Hash a plaintext password after checking its strength.

        A password must be at least 6 characters and mix at least three of
        upper case, lower case, digits and symbols.

        Raises:
            ValidationFailure: If the password is too weak or too long for bcrypt
        """
        if not isinstance(plaintext, str) or len(plaintext) < _PASSWORD_MIN_LENGTH:
            raise ValidationFailure(
                f"Password must be at least {_PASSWORD_MIN_LENGTH} characters"
            )
        if _character_classes(plaintext) < _PASSWORD_MIN_CHARACTER_CLASSES:
            raise ValidationFailure(
                "Password must contain at least three of: upper case letters, "
                "lower case letters, digits, symbols"
            )
        encoded = plaintext.encode("utf-8")
        if len(encoded) > _BCRYPT_MAX_BYTES:
            raise ValidationFailure(
                f"Password must be at most {_BCRYPT_MAX_BYTES} bytes"
            )
        return cls._hash(encoded)

    @classmethod
    def placeholder(cls) -> CredentialDigest:
        """Digest of an unguessable random secret.

        Gives federated-only accounts the same record shape as local ones
        without any password a caller could know.
        """
        return cls._hash(secrets.token_urlsafe(32).encode("utf-8"))

    @classmethod
    def _hash(cls, encoded: bytes) -> CredentialDigest:
        digest = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
        return cls(value=digest.decode("utf-8"))

    def matches(self, plaintext: str) -> bool:
        """Check plaintext against this digest in constant time.

        Returns False for malformed digests or inputs bcrypt refuses.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), self.value.encode("utf-8"))
        except (ValueError, TypeError):
            return False


@dataclass(frozen=True)
class RequestMetadata:
    """Audit context of the request that triggered an authentication.

    Unlike the other value objects this one never fails: missing or
    malformed values are recorded as ``"unknown"``.
    """

    client_ip: str = UNKNOWN
    user_agent: str = UNKNOWN

    def __post_init__(self) -> None:
        object.__setattr__(self, "client_ip", _normalize_ip(self.client_ip))
        object.__setattr__(self, "user_agent", _normalize_user_agent(self.user_agent))

    @classmethod
    def unknown(cls) -> RequestMetadata:
        return cls()

    @property
    def browser(self) -> str:
        """Coarse browser family derived from the user agent."""
        ua = self.user_agent
        if ua == UNKNOWN:
            return "Unknown"
        if "Edg" in ua:
            return "Edge"
        if "OPR" in ua or "Opera" in ua:
            return "Opera"
        if "Chrome" in ua:
            return "Chrome"
        if "Firefox" in ua:
            return "Firefox"
        if "Safari" in ua:
            return "Safari"
        return "Unknown"

    @property
    def operating_system(self) -> str:
        """Coarse operating system derived from the user agent."""
        ua = self.user_agent
        if ua == UNKNOWN:
            return "Unknown"
        if "Windows" in ua:
            return "Windows"
        if "Android" in ua:
            return "Android"
        if "iPhone" in ua or "iPad" in ua:
            return "iOS"
        if "Mac OS" in ua:
            return "macOS"
        if "Linux" in ua:
            return "Linux"
        return "Unknown"

    @property
    def device_description(self) -> str:
        return f"{self.browser} on {self.operating_system}"


def _normalize_ip(value: str | None) -> str:
    if not value or not isinstance(value, str):
        return UNKNOWN
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return UNKNOWN


def _normalize_user_agent(value: str | None) -> str:
    if not value or not isinstance(value, str):
        return UNKNOWN
    trimmed = value.strip()
    # Anything outside this range is noise rather than a real client string
    if len(trimmed) < 5 or len(trimmed) > 1000:
        return UNKNOWN
    return trimmed
