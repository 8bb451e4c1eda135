"""HTTP Basic authentication against the single configured account."""

import base64
import binascii
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


class AuthDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


def decode_basic_auth(header: Optional[str]) -> Optional[Credentials]:
    """
    Decode an "Authorization: Basic <base64>" header value.
    Returns None when the header is missing or not valid Basic syntax.
    """
    if not header:
        return None
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return Credentials(username=username, password=password)


class AuthGate:
    def __init__(self, credentials: Optional[Credentials] = None, realm: str = "File Share"):
        self.credentials = credentials
        self.realm = realm

    @classmethod
    def for_settings(cls, settings) -> "AuthGate":
        credentials = None
        if settings.auth_enabled:
            credentials = Credentials(settings.username, settings.password)
        return cls(credentials, settings.realm)

    @property
    def enabled(self) -> bool:
        return self.credentials is not None

    @property
    def challenge(self) -> str:
        realm = self.realm.replace("\\", "\\\\").replace('"', '\\"')
        return f'Basic realm="{realm}", charset="UTF-8"'

    def authorize(self, header: Optional[str]) -> AuthDecision:
        if self.credentials is None:
            return AuthDecision.ALLOWED

        given = decode_basic_auth(header) or Credentials("", "")
        # both comparisons always run so timing does not reveal which field failed
        user_ok = secrets.compare_digest(
            given.username.encode("utf-8"), self.credentials.username.encode("utf-8")
        )
        pass_ok = secrets.compare_digest(
            given.password.encode("utf-8"), self.credentials.password.encode("utf-8")
        )
        if user_ok & pass_ok and header:
            return AuthDecision.ALLOWED
        return AuthDecision.DENIED
