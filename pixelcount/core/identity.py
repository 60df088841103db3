"""Anonymous visitor identity, carried in a long-lived cookie."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pixelcount.core.models import Identity

IDENTITY_COOKIE_NAME = "sts"
IDENTITY_COOKIE_PATH = "/"
# Effectively never expires.
IDENTITY_COOKIE_EXPIRES = datetime(3000, 1, 1, 1, 0, 0, tzinfo=timezone.utc)


def generate_user_id() -> str:
    return str(uuid.uuid4())


class IdentityResolver:
    """Reuses the visitor's identity token or mints a new one.

    Tokens are not validated: whatever value the client presents is used as
    the user id, so identities can be shared or forged by clients.
    """

    def __init__(self, cookie_name: str = IDENTITY_COOKIE_NAME) -> None:
        self.cookie_name = cookie_name

    def resolve(self, token: str | None) -> Identity:
        if token:
            return Identity(user_id=token, is_new=False)
        return Identity(user_id=generate_user_id(), is_new=True)

    def cookie_params(self, identity: Identity) -> dict:
        """Keyword arguments for ``Response.set_cookie`` issuing ``identity``."""
        return {
            "key": self.cookie_name,
            "value": identity.user_id,
            "path": IDENTITY_COOKIE_PATH,
            "expires": IDENTITY_COOKIE_EXPIRES,
            # No SameSite attribute: the pixel is loaded cross-site.
            "samesite": None,
        }
