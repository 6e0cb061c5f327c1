"""Resolve the caller's identity from the upstream identity header.

Token verification happens at the identity provider's edge; by the time a
request reaches the API the verified subject travels in a single header.
"""

from django.conf import settings
from rest_framework.authentication import BaseAuthentication

from ticketing.domain import Identity


class IdentityPrincipal:
    """Request user for a caller who presented an identity subject."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, identity: Identity) -> None:
        self.identity = identity

    def __str__(self) -> str:
        return self.identity.subject


def header_meta_key(header: str) -> str:
    return "HTTP_" + header.upper().replace("-", "_")


class IdentityHeaderAuthentication(BaseAuthentication):
    """Sets ``request.auth`` to an Identity when the header is present.

    Requests without the header stay anonymous; each service decides
    whether it needs a caller.
    """

    def authenticate(self, request):
        header = settings.TICKETING_IDENTITY_HEADER
        subject = request.META.get(header_meta_key(header), "").strip()
        if not subject:
            return None
        identity = Identity(subject)
        return IdentityPrincipal(identity), identity

    def authenticate_header(self, request) -> str:
        return settings.TICKETING_IDENTITY_HEADER
