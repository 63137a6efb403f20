"""
Calendar feed token service.

Handles:
- Feed token generation (opaque, URL-safe, shown once)
- Listing and revocation of a household's feeds
- Token resolution for unauthenticated feed requests
- Rendering the feed document for a token

Design:
- Only the SHA-256 hash of a token is stored; the first characters are kept
  as a prefix so users can tell feeds apart
- Unknown and revoked tokens are indistinguishable to callers (NotFoundError)
- The feed window runs from today in the household timezone for the
  configured horizon
"""

import hashlib
import secrets
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.src.config.settings import AppSettings, get_settings
from backend.src.models import CalendarFeed, Household
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import NotFoundError, ValidationError
from backend.src.services.feed_service import FeedSerializer, feed_filename
from backend.src.services.guid import GuidService
from backend.src.services.occurrence_service import expand_occurrences
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


TOKEN_BYTES = 32
TOKEN_PREFIX_LENGTH = 8  # First 8 chars shown to users for identification
MAX_FEED_NAME_LENGTH = 100


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class CalendarFeedService:
    """
    Service for managing calendar feed tokens.

    Usage:
        >>> service = CalendarFeedService(db_session)
        >>> token, feed = service.create_feed("hsh_01hgw2bbg...", "Family")
        >>> filename, document = service.render_feed(token)
    """

    def __init__(self, db: Session, settings: Optional[AppSettings] = None):
        """
        Initialize calendar feed service.

        Args:
            db: SQLAlchemy database session
            settings: Application settings (defaults to the cached settings)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.event_service = EventService(db)

    def create_feed(
        self,
        household_guid: str,
        name: str,
        filter_member: Optional[str] = None,
    ) -> Tuple[str, CalendarFeed]:
        """
        Create a feed and its token.

        The plain token is only returned here and never stored.

        Args:
            household_guid: Household GUID
            name: Feed display name
            filter_member: Optional member reference; the feed then only
                contains occurrences where that member drives

        Returns:
            Tuple of (plain token, CalendarFeed)

        Raises:
            NotFoundError: If the household does not exist
            ValidationError: If the name is empty or too long, or the filter
                member is unknown
        """
        if not name or not name.strip():
            raise ValidationError("Feed name cannot be empty", field="name")
        name = name.strip()
        if len(name) > MAX_FEED_NAME_LENGTH:
            raise ValidationError(
                f"Feed name cannot exceed {MAX_FEED_NAME_LENGTH} characters", field="name"
            )

        household = self.event_service.get_household(household_guid)

        if filter_member:
            directory = self.event_service.member_directory(household)
            if not directory.is_known(directory.resolve(filter_member)):
                raise ValidationError(
                    f"Unknown household member: {filter_member}", field="filter_member"
                )

        token = secrets.token_urlsafe(TOKEN_BYTES)
        feed = CalendarFeed(
            household_id=household.id,
            name=name,
            token_hash=hash_token(token),
            token_prefix=token[:TOKEN_PREFIX_LENGTH],
            filter_member=filter_member or None,
            is_active=True,
        )
        self.db.add(feed)
        self.db.commit()
        self.db.refresh(feed)

        logger.info(f"Created calendar feed '{name}' ({feed.guid}) for household {household.guid}")
        return token, feed

    def list_feeds(self, household_guid: str, include_revoked: bool = False) -> List[CalendarFeed]:
        household = self.event_service.get_household(household_guid)
        query = self.db.query(CalendarFeed).filter(CalendarFeed.household_id == household.id)
        if not include_revoked:
            query = query.filter(CalendarFeed.is_active.is_(True))
        return query.order_by(CalendarFeed.created_at, CalendarFeed.id).all()

    def get_feed(self, household: Household, guid: str) -> CalendarFeed:
        uuid_value = GuidService.uuid_or_none(guid, "fed")
        if uuid_value is None:
            raise NotFoundError("CalendarFeed", guid)

        feed = (
            self.db.query(CalendarFeed)
            .filter(CalendarFeed.uuid == uuid_value)
            .filter(CalendarFeed.household_id == household.id)
            .first()
        )
        if not feed:
            raise NotFoundError("CalendarFeed", guid)
        return feed

    def revoke_feed(self, household_guid: str, feed_guid: str) -> CalendarFeed:
        """
        Revoke a feed. Calendar applications polling it get 404 from now on.

        Raises:
            NotFoundError: If the household or feed does not exist
        """
        household = self.event_service.get_household(household_guid)
        feed = self.get_feed(household, feed_guid)

        if feed.is_active:
            feed.is_active = False
            self.db.commit()
            self.db.refresh(feed)
            logger.info(f"Revoked calendar feed '{feed.name}' ({feed.guid})")

        return feed

    def resolve_token(self, token: str) -> CalendarFeed:
        """
        Look up the active feed for a token and record the access.

        Raises:
            NotFoundError: If the token is unknown or revoked
        """
        if not token:
            raise NotFoundError("CalendarFeed", "token")

        feed = (
            self.db.query(CalendarFeed)
            .filter(CalendarFeed.token_hash == hash_token(token))
            .first()
        )
        if not feed or not feed.is_active:
            raise NotFoundError("CalendarFeed", f"{token[:TOKEN_PREFIX_LENGTH]}...")

        feed.last_accessed_at = datetime.utcnow()
        self.db.commit()
        return feed

    def render_feed(self, token: str, today: Optional[date] = None) -> Tuple[str, bytes]:
        """
        Render the iCalendar document for a feed token.

        Args:
            token: Plain feed token
            today: First date of the window (defaults to today in the
                household timezone)

        Returns:
            Tuple of (download filename, document bytes)

        Raises:
            NotFoundError: If the token is unknown or revoked
            ValidationError: If the household timezone is invalid
        """
        feed = self.resolve_token(token)
        household = feed.household

        zone = self.event_service.household_zone(household)
        if today is None:
            today = datetime.now(zone).date()
        window_start, window_end = EventService.window_dates(today, self.settings.feed_horizon_days)

        events, overrides = self.event_service.load_household_records(
            household.guid, window_start, window_end
        )
        result = expand_occurrences(events, overrides, window_start, window_end, zone)

        directory = self.event_service.member_directory(household)
        filter_member = directory.resolve(feed.filter_member) if feed.filter_member else None

        serializer = FeedSerializer(
            product_id=self.settings.feed_product_id,
            uid_domain=self.settings.feed_uid_domain,
        )
        document = serializer.serialize(result.occurrences, feed.name, directory.name_for, filter_member)

        logger.info(
            f"Rendered calendar feed {feed.guid}: {len(result.occurrences)} occurrences "
            f"from {window_start} to {window_end}",
            extra={"feed_guid": feed.guid, "issues": len(result.issues)},
        )
        return feed_filename(feed.name), document
