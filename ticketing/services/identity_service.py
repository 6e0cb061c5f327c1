"""User directory: identity sync and role checks."""

import logging

from ticketing.domain import Identity, IdentityProfile, Role, User, UserStatus
from ticketing.domain.errors import (
    UnauthenticatedError,
    UnauthorizedError,
    UserSuspendedError,
)
from ticketing.stores.interfaces import UserStore

logger = logging.getLogger(__name__)


class IdentityService:
    """Maps identity-provider subjects to users and enforces roles."""

    def __init__(self, users: UserStore) -> None:
        self._users = users

    def sync_identity(self, profile: IdentityProfile) -> tuple[User, bool]:
        """Create or update the user for a provider profile.

        New users start as active attendees. Role and status of an existing
        user are never touched by sync.
        """
        with self._users.atomic():
            existing = self._users.get_by_external_id(profile.external_id)
            if existing is None:
                user = self._users.create_user(profile, Role.ATTENDEE)
                logger.info("Created user for subject %s", profile.external_id)
                return user, True
            user = self._users.update_profile(existing.id, profile)
            logger.info("Updated user for subject %s", profile.external_id)
            return user, False

    def remove_identity(self, subject: str) -> bool:
        """Remove the user for a subject.

        Users that own events, orders or tickets are suspended instead of
        deleted so the ledger keeps its references.
        """
        with self._users.atomic():
            user = self._users.get_by_external_id(subject)
            if user is None:
                logger.warning("Cannot remove user, none found for subject %s", subject)
                return False
            if self._users.has_records(user.id):
                self._users.set_status(user.id, UserStatus.SUSPENDED)
                logger.info("Suspended user with history for subject %s", subject)
            else:
                self._users.delete_user(user.id)
                logger.info("Deleted user for subject %s", subject)
            return True

    def current_user(self, identity: Identity | None) -> User | None:
        if identity is None:
            return None
        return self._users.get_by_external_id(identity.subject)

    def require_user(self, identity: Identity | None) -> User:
        """Return the active user for an identity.

        Raises:
            UnauthenticatedError: If there is no identity or no synced user.
            UserSuspendedError: If the user is suspended.
        """
        user = self.current_user(identity)
        if user is None:
            raise UnauthenticatedError()
        if user.status == UserStatus.SUSPENDED:
            raise UserSuspendedError()
        return user

    def require_organizer(self, identity: Identity | None) -> User:
        user = self.require_user(identity)
        if not user.can_organize:
            raise UnauthorizedError("Organizer access required")
        return user

    def require_admin(self, identity: Identity | None) -> User:
        user = self.require_user(identity)
        if not user.is_admin:
            raise UnauthorizedError("Admin access required")
        return user
