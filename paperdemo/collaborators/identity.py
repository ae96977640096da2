"""Identity resolution from trusted gateway headers.

Authentication happens upstream; the gateway forwards the verified subject
and profile fields as request headers.
"""

from typing import Mapping, Optional

from ..models.schemas import Identity

SUBJECT_HEADER = "x-auth-subject"
EMAIL_HEADER = "x-auth-email"
NAME_HEADER = "x-auth-name"
ORG_HEADER = "x-auth-org"


class HeaderIdentityProvider:
    """Reads the caller identity from a header mapping."""

    def __init__(self, headers: Mapping[str, str]):
        self._headers = {key.lower(): value for key, value in headers.items()}

    def current_identity(self) -> Optional[Identity]:
        subject = (self._headers.get(SUBJECT_HEADER) or "").strip()
        if not subject:
            return None
        return Identity(
            subject=subject,
            email=self._headers.get(EMAIL_HEADER),
            name=self._headers.get(NAME_HEADER),
            organization_id=self._headers.get(ORG_HEADER) or None,
        )
