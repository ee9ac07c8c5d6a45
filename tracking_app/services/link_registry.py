import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from tracking_app.exceptions import AliasConflictError, NotFoundError, ValidationError
from tracking_app.models import Link
from tracking_app.schemas.link import LinkCreate
from tracking_app.storage.strategies import TrackingStorage
from tracking_app.utils.time import to_utc_naive, utcnow

logger = logging.getLogger(__name__)


class LinkRegistry:
    """
    Owns the alias -> target lifecycle: create, lookup, soft delete, expiry.
    
    Links are never physically deleted. Expired links are deactivated by
    ``sweep_expired``, which runs before every listing or resolving read
    so an expired link is never served even without a scheduled sweep.
    """
    
    def __init__(self, storage: TrackingStorage):
        self.storage = storage
    
    async def create(
        self,
        alias: str,
        target_url: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None
    ) -> Link:
        """
        Create a new active link with a zero counter.
        
        Raises:
            ValidationError: malformed alias, URL or expiry
            AliasConflictError: an active link already uses the alias
        """
        try:
            data = LinkCreate(
                alias=alias,
                target_url=target_url,
                description=description,
                expires_at=expires_at,
            )
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or None
            raise ValidationError(f"{field}: {error['msg']}", field=field) from e
        
        if await self.storage.get_link_by_alias(data.alias):
            raise AliasConflictError(data.alias)
        
        link = await self.storage.create_link(
            alias=data.alias,
            target_url=data.target_url,
            description=data.description,
            expires_at=to_utc_naive(data.expires_at),
        )
        logger.info("Created link %s (%s)", link.alias, link.id)
        return link
    
    async def find_active_by_alias(self, alias: str) -> Optional[Link]:
        return await self.storage.get_link_by_alias(alias)
    
    async def find_by_id(self, link_id: str) -> Optional[Link]:
        """Any link regardless of active flag"""
        return await self.storage.get_link_by_id(link_id)
    
    async def deactivate(self, link_id: str) -> bool:
        """Soft delete (idempotent). False if the link never existed"""
        found = await self.storage.deactivate_link(link_id)
        if found:
            logger.info("Deactivated link %s", link_id)
        return found
    
    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Deactivate every active link whose expiry is strictly before now"""
        count = await self.storage.deactivate_expired_links(to_utc_naive(now) or utcnow())
        if count:
            logger.info("Deactivated %d expired links", count)
        return count
    
    async def list_active(self) -> List[Link]:
        await self.sweep_expired()
        return await self.storage.list_active_links()
    
    async def resolve(self, alias: str) -> Link:
        """
        Resolve an alias to its active link.
        
        Raises:
            NotFoundError: no active link uses the alias
        """
        await self.sweep_expired()
        link = await self.storage.get_link_by_alias(alias)
        if link is None:
            raise NotFoundError(f"Link '{alias}' not found")
        return link
