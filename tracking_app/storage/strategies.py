"""
Tracking storage strategies using Strategy Pattern.

The core services only talk to ``TrackingStorage``; the SQLAlchemy
implementation works against any engine SQLAlchemy supports (SQLite in
development and tests, PostgreSQL in production).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from functools import wraps
from typing import List, Optional

from sqlalchemy import distinct, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tracking_app.exceptions import AliasConflictError, InternalError
from tracking_app.models import Link, Visit
from tracking_app.schemas.analytics import ClickStats, CountEntry
from tracking_app.schemas.visit import VisitResponse
from tracking_app.utils.time import utcnow

logger = logging.getLogger(__name__)


class TrackingStorage(ABC):
    """
    Abstract base class for the tracking store.
    
    Defines every storage operation the pipeline and the aggregator consume.
    Implementations own their own transactions: each method is one unit of work.
    """
    
    @abstractmethod
    async def create_link(
        self,
        alias: str,
        target_url: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None
    ) -> Link:
        """
        Insert a new active link with a zero counter.
        
        Raises:
            AliasConflictError: if an active link already uses the alias
        """
        pass
    
    @abstractmethod
    async def get_link_by_alias(self, alias: str) -> Optional[Link]:
        """Active link for alias, or None"""
        pass
    
    @abstractmethod
    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        """Link by id regardless of its active flag"""
        pass
    
    @abstractmethod
    async def list_active_links(self) -> List[Link]:
        """All active links, newest first"""
        pass
    
    @abstractmethod
    async def increment_click_count(self, link_id: str) -> None:
        """Atomic counter increment evaluated by the store"""
        pass
    
    @abstractmethod
    async def deactivate_link(self, link_id: str) -> bool:
        """Soft delete. Returns False if the link never existed"""
        pass
    
    @abstractmethod
    async def deactivate_expired_links(self, now: datetime) -> int:
        """Deactivate active links with expires_at < now. Returns count"""
        pass
    
    @abstractmethod
    async def insert_visit(self, visit: Visit) -> Visit:
        """Persist a visit row"""
        pass
    
    @abstractmethod
    async def record_visit(self, visit: Visit) -> Visit:
        """Insert a visit and increment its link's counter as one unit of work"""
        pass
    
    @abstractmethod
    async def list_visits_by_link(self, link_id: str) -> List[Visit]:
        """Visits for one link, oldest first"""
        pass
    
    @abstractmethod
    async def list_visits_in_range(
        self,
        start: datetime,
        end: datetime,
        link_id: Optional[str] = None
    ) -> List[Visit]:
        """Visits with start <= visited_at < end, oldest first"""
        pass
    
    @abstractmethod
    async def get_click_stats(
        self,
        link_id: Optional[str] = None,
        top_countries: int = 10,
        recent_limit: int = 10
    ) -> ClickStats:
        """Store-side totals, uniques, top countries and recent visits"""
        pass


def _wrap_db_errors(method):
    """Roll back and re-raise store failures as InternalError"""
    @wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Storage operation %s failed", method.__name__)
            raise InternalError("Storage operation failed") from e
    return wrapper


class SQLAlchemyTrackingStorage(TrackingStorage):
    """
    SQLAlchemy implementation of the tracking store.
    
    Concurrency relies on the engine: the counter is bumped with
    ``click_count = click_count + 1`` in a single UPDATE, never read
    and written back from Python.
    """
    
    def __init__(self, db: Session):
        """
        Args:
            db: Database session (one per request)
        """
        self.db = db
    
    async def create_link(
        self,
        alias: str,
        target_url: str,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None
    ) -> Link:
        link = Link(
            alias=alias,
            target_url=target_url,
            description=description,
            expires_at=expires_at,
            created_at=utcnow(),
            click_count=0,
            is_active=True,
        )
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Partial unique index on active aliases
            self.db.rollback()
            raise AliasConflictError(alias) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to create link %r", alias)
            raise InternalError("Storage operation failed") from e
        
        self.db.refresh(link)
        return link
    
    @_wrap_db_errors
    async def get_link_by_alias(self, alias: str) -> Optional[Link]:
        return self.db.execute(
            select(Link).where(Link.alias == alias, Link.is_active == True)  # noqa: E712
        ).scalar_one_or_none()
    
    @_wrap_db_errors
    async def get_link_by_id(self, link_id: str) -> Optional[Link]:
        return self.db.get(Link, link_id)
    
    @_wrap_db_errors
    async def list_active_links(self) -> List[Link]:
        return list(self.db.execute(
            select(Link)
            .where(Link.is_active == True)  # noqa: E712
            .order_by(Link.created_at.desc())
        ).scalars())
    
    def _increment(self, link_id: str) -> None:
        self.db.execute(
            update(Link)
            .where(Link.id == link_id)
            .values(click_count=Link.click_count + 1)
            .execution_options(synchronize_session=False)
        )
    
    @_wrap_db_errors
    async def increment_click_count(self, link_id: str) -> None:
        self._increment(link_id)
        self.db.commit()
    
    @_wrap_db_errors
    async def deactivate_link(self, link_id: str) -> bool:
        link = self.db.get(Link, link_id)
        if link is None:
            return False
        
        if link.is_active:
            link.is_active = False
            self.db.commit()
        return True
    
    @_wrap_db_errors
    async def deactivate_expired_links(self, now: datetime) -> int:
        result = self.db.execute(
            update(Link)
            .where(
                Link.is_active == True,  # noqa: E712
                Link.expires_at.isnot(None),
                Link.expires_at < now,
            )
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount or 0
    
    @_wrap_db_errors
    async def insert_visit(self, visit: Visit) -> Visit:
        self.db.add(visit)
        self.db.commit()
        self.db.refresh(visit)
        return visit
    
    @_wrap_db_errors
    async def record_visit(self, visit: Visit) -> Visit:
        self.db.add(visit)
        self.db.flush()
        self._increment(visit.link_id)
        self.db.commit()
        self.db.refresh(visit)
        return visit
    
    @_wrap_db_errors
    async def list_visits_by_link(self, link_id: str) -> List[Visit]:
        return list(self.db.execute(
            select(Visit)
            .where(Visit.link_id == link_id)
            .order_by(Visit.visited_at)
        ).scalars())
    
    @_wrap_db_errors
    async def list_visits_in_range(
        self,
        start: datetime,
        end: datetime,
        link_id: Optional[str] = None
    ) -> List[Visit]:
        query = select(Visit).where(Visit.visited_at >= start, Visit.visited_at < end)
        if link_id:
            query = query.where(Visit.link_id == link_id)
        return list(self.db.execute(query.order_by(Visit.visited_at)).scalars())
    
    @_wrap_db_errors
    async def get_click_stats(
        self,
        link_id: Optional[str] = None,
        top_countries: int = 10,
        recent_limit: int = 10
    ) -> ClickStats:
        filters = [Visit.link_id == link_id] if link_id else []
        
        total, unique = self.db.execute(
            select(func.count(Visit.id), func.count(distinct(Visit.ip_address))).where(*filters)
        ).one()
        
        count = func.count(Visit.id).label("count")
        countries = self.db.execute(
            select(Visit.country, count)
            .where(Visit.country.isnot(None), *filters)
            .group_by(Visit.country)
            .order_by(count.desc(), Visit.country)
            .limit(top_countries)
        ).all()
        
        recent = self.db.execute(
            select(Visit)
            .where(*filters)
            .order_by(Visit.visited_at.desc())
            .limit(recent_limit)
        ).scalars().all()
        
        return ClickStats(
            total_clicks=total or 0,
            unique_visitors=unique or 0,
            countries=[CountEntry(name=row[0], count=row[1]) for row in countries],
            recent_visits=[VisitResponse.model_validate(visit) for visit in recent],
        )
