"""Owner provisioning and resolution."""

import logging
from typing import Optional

from ..database.repository import OwnerRepository
from ..models.schemas import Identity, Owner
from .errors import DuplicateKey, Unauthenticated

logger = logging.getLogger(__name__)

DEFAULT_OWNER_NAME = "Unknown User"


class OwnerService:
    """Maps authenticated identities to owner records."""

    def __init__(self, owners: OwnerRepository):
        self.owners = owners

    async def ensure_owner(self, identity: Optional[Identity]) -> str:
        """Return the owner id for an identity, creating the owner on first use.

        Safe to call concurrently for the same identity: the unique index on
        the external id rejects the second insert, which then re-reads.

        Raises:
            Unauthenticated: If there is no identity.
        """
        if identity is None:
            raise Unauthenticated("Not authenticated")

        existing = await self.owners.get_by_external_id(identity.subject)
        if existing is not None:
            return existing.id

        try:
            owner_id = await self.owners.create(
                external_id=identity.subject,
                email=identity.email or "",
                name=identity.name or DEFAULT_OWNER_NAME,
                organization_id=identity.organization_id,
            )
        except DuplicateKey:
            existing = await self.owners.get_by_external_id(identity.subject)
            if existing is None:
                raise
            logger.info(f"[OWNERS] Concurrent provisioning for {identity.subject}, reusing {existing.id}")
            return existing.id

        logger.info(f"[OWNERS] Created owner {owner_id} for {identity.subject}")
        return owner_id

    async def resolve_owner(self, identity: Optional[Identity]) -> str:
        """Return the owner id for an identity without creating one.

        Raises:
            Unauthenticated: If there is no identity or no owner for it yet.
        """
        if identity is None:
            raise Unauthenticated("Not authenticated")
        owner = await self.owners.get_by_external_id(identity.subject)
        if owner is None:
            raise Unauthenticated(
                "Owner not found. Please ensure the owner is created via ensure_owner first."
            )
        return owner.id

    async def current_owner(self, identity: Optional[Identity]) -> Optional[Owner]:
        """The owner record of an identity, or None."""
        if identity is None:
            return None
        return await self.owners.get_by_external_id(identity.subject)
