"""Activity directory: listing, filtering and managing activities.

:class:`ActivityDirectory` wraps a :class:`~hobbly_bot.adapters.base.TableStore`
and translates between the backend's snake_case rows and the
:class:`~hobbly_bot.core.models.Activity` model. All methods are coroutines
and may raise :class:`~hobbly_bot.core.errors.NetworkError` or
:class:`~hobbly_bot.core.errors.BackendError` from the store.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC
from typing import Any

from ..adapters.base import Filter, ObjectStore, Row, TableQuery, TableStore
from ..core import pagination, validation
from ..core.errors import NotFound, PermissionDenied
from ..core.models import (
    Activity,
    ActivityFilters,
    ActivityFormData,
    ActivityStats,
    AgeRange,
    Category,
    Page,
    Role,
    Tag,
    TagRef,
)

log = logging.getLogger("hobbly.directory")

ACTIVITIES = "activities"
CATEGORIES = "categories"
TAGS = "tags"
PROFILES = "user_profiles"
IMAGE_BUCKET = "activity-images"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=UTC)


def _iso(value: datetime.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # Rows without an offset are stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _tag_ref(raw: Any) -> TagRef:
    if isinstance(raw, dict):
        return TagRef(id=str(raw["id"]), name=str(raw.get("name", raw["id"])))
    return TagRef(id=str(raw), name=str(raw))


def activity_from_row(row: Row) -> Activity:
    """Build an :class:`Activity` from a row of the ``activities`` table."""
    min_age, max_age = row.get("min_age"), row.get("max_age")
    age_range = None
    if min_age is not None or max_age is not None:
        age_range = AgeRange(min_age=min_age, max_age=max_age)
    category = row.get("category")
    images = row.get("image_urls") or []
    return Activity(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description") or "",
        short_description=row.get("short_description"),
        type=row.get("type") or "activity",
        category_id=str(row.get("category_id") or ""),
        category=Category(**category) if isinstance(category, dict) else None,
        location=row.get("location") or "",
        address=row.get("address"),
        price=float(row.get("price") or 0),
        currency=row.get("currency") or "EUR",
        start_date=row.get("date_time"),
        end_date=row.get("end_date"),
        max_participants=row.get("max_participants"),
        current_participants=int(row.get("current_participants") or 0),
        age_range=age_range,
        organizer_id=str(row["organizer_id"]),
        contact_email=row.get("contact_email") or "",
        contact_phone=row.get("contact_phone"),
        image_url=images[0] if images else None,
        external_link=row.get("external_link"),
        tags={_tag_ref(t) for t in row.get("tags") or []},
        is_deleted=bool(row.get("is_deleted", False)),
        created_at=row["created_at"],
        updated_at=row.get("updated_at") or row["created_at"],
    )


def row_from_form(form: ActivityFormData) -> Row:
    """Translate form data into the writable columns of ``activities``."""
    description = form.description.strip()
    return {
        "title": form.title.strip(),
        "description": description,
        "short_description": description[:100] or None,
        "type": form.type.value,
        "category_id": form.category_id,
        "location": form.location.strip(),
        "address": (form.address or "").strip() or None,
        "price": form.price,
        "currency": "EUR",
        "date_time": _iso(form.start_date),
        "end_date": _iso(form.end_date),
        "max_participants": form.max_participants,
        "min_age": form.min_age,
        "max_age": form.max_age,
        "contact_email": form.contact_email.strip(),
        "contact_phone": (form.contact_phone or "").strip() or None,
        "external_link": (form.external_link or "").strip() or None,
        "tags": list(form.tags),
    }


def filter_query(filters: ActivityFilters | None) -> TableQuery:
    """Base listing query: live (not soft-deleted) activities matching ``filters``."""
    query = TableQuery(order_by="created_at", descending=True, count=True)
    query.where("is_deleted", "eq", False)
    if filters is None:
        return query
    if filters.type is not None:
        query.where("type", "eq", filters.type.value)
    if filters.organizer_id:
        query.where("organizer_id", "eq", filters.organizer_id)
    if filters.category_id:
        query.where("category_id", "eq", filters.category_id)
    if filters.location:
        query.where("location", "ilike", filters.location.strip())
    if filters.min_price is not None:
        query.where("price", "gte", filters.min_price)
    if filters.max_price is not None:
        query.where("price", "lte", filters.max_price)
    if filters.search and filters.search.strip():
        term = filters.search.strip()
        query.any_of = [
            Filter("title", "ilike", term),
            Filter("description", "ilike", term),
        ]
    return query


@dataclass
class ImageUpload:
    filename: str
    content: bytes
    content_type: str


class ActivityDirectory:
    """Remote collection of activities.

    Parameters
    ----------
    store:
        Table access used for every read and write.
    objects:
        Optional blob storage for activity images.
    owner_fallback:
        When ``True`` (the default), owner-scoped listings and stats that
        match no records fall back to the unfiltered set. This keeps the
        behaviour older dashboards relied on; switch it off to get an empty
        page instead.
    clock:
        Source of ``created_at`` / ``updated_at`` timestamps.

    """

    def __init__(
        self,
        store: TableStore,
        objects: ObjectStore | None = None,
        *,
        owner_fallback: bool = True,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.objects = objects
        self.owner_fallback = owner_fallback
        self._clock = clock

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _fetch_page(self, query: TableQuery, page: int, limit: int) -> Page[Activity]:
        page, limit = pagination.normalize(page, limit)
        query.limit = limit
        query.offset = pagination.offset_for(page, limit)
        result = await self.store.query(ACTIVITIES, query)
        items = [activity_from_row(r) for r in result.rows]
        total = result.total if result.total is not None else len(items)
        return Page[Activity].build(items, page, limit, total)

    async def _get_row(self, activity_id: str) -> Row:
        query = TableQuery(limit=1).where("id", "eq", activity_id)
        result = await self.store.query(ACTIVITIES, query)
        if not result.rows:
            raise NotFound(f"Activity {activity_id} not found.")
        return result.rows[0]

    async def is_admin(self, user_id: str) -> bool:
        query = TableQuery(limit=1).where("id", "eq", user_id)
        result = await self.store.query(PROFILES, query)
        if not result.rows:
            return False
        return Role.parse(result.rows[0].get("role")) is Role.ADMIN

    async def _owns_any(self, organizer_id: str) -> bool:
        """Whether ``organizer_id`` has any activity, soft-deleted ones included."""
        query = TableQuery(limit=1).where("organizer_id", "eq", organizer_id)
        result = await self.store.query(ACTIVITIES, query)
        return bool(result.rows)

    async def _check_can_modify(self, row: Row, caller_id: str, action: str) -> None:
        if str(row["organizer_id"]) == caller_id:
            return
        if await self.is_admin(caller_id):
            return
        log.info("Denied %s of activity %s for %s", action, row["id"], caller_id)
        raise PermissionDenied(f"You can only {action} your own activities.")

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    async def list(
        self,
        filters: ActivityFilters | None = None,
        page: int = 1,
        limit: int = pagination.DEFAULT_LIMIT,
    ) -> Page[Activity]:
        """Return live activities matching ``filters``, newest first."""
        return await self._fetch_page(filter_query(filters), page, limit)

    async def list_for_owner(
        self,
        organizer_id: str,
        page: int = 1,
        limit: int = pagination.DEFAULT_LIMIT,
    ) -> Page[Activity]:
        """Return the live activities created by ``organizer_id``."""
        query = filter_query(None).where("organizer_id", "eq", organizer_id)
        result = await self._fetch_page(query, page, limit)
        if result.total == 0 and self.owner_fallback and not await self._owns_any(organizer_id):
            log.warning(
                "No activities for organizer %s; listing all activities instead",
                organizer_id,
            )
            return await self._fetch_page(filter_query(None), page, limit)
        return result

    async def list_deleted(
        self,
        caller_id: str,
        page: int = 1,
        limit: int = pagination.DEFAULT_LIMIT,
    ) -> Page[Activity]:
        """Soft-deleted activities visible to ``caller_id`` (all of them for admins)."""
        query = TableQuery(order_by="updated_at", descending=True, count=True)
        query.where("is_deleted", "eq", True)
        if not await self.is_admin(caller_id):
            query.where("organizer_id", "eq", caller_id)
        return await self._fetch_page(query, page, limit)

    async def get_by_id(self, activity_id: str) -> Activity:
        return activity_from_row(await self._get_row(activity_id))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create(self, form: ActivityFormData, organizer_id: str) -> Activity:
        validation.validate_activity(form)
        now = _iso(self._clock())
        row = row_from_form(form)
        row.update(
            id=str(uuid.uuid4()),
            organizer_id=organizer_id,
            current_participants=0,
            image_urls=[],
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        stored = await self.store.insert(ACTIVITIES, row)
        log.info("Activity %s created by %s", stored["id"], organizer_id)
        return activity_from_row(stored)

    async def update(
        self, activity_id: str, form: ActivityFormData, caller_id: str
    ) -> Activity:
        row = await self._get_row(activity_id)
        await self._check_can_modify(row, caller_id, "edit")
        validation.validate_activity(form)
        values = row_from_form(form)
        values["updated_at"] = _iso(self._clock())
        updated = await self.store.update(ACTIVITIES, {"id": activity_id}, values)
        if not updated:
            raise NotFound(f"Activity {activity_id} not found.")
        log.info("Activity %s updated by %s", activity_id, caller_id)
        return activity_from_row(updated[0])

    async def soft_delete(self, activity_id: str, caller_id: str) -> None:
        """Mark an activity deleted. Deleting twice is not an error."""
        row = await self._get_row(activity_id)
        await self._check_can_modify(row, caller_id, "delete")
        await self.store.update(
            ACTIVITIES,
            {"id": activity_id},
            {"is_deleted": True, "updated_at": _iso(self._clock())},
        )
        log.info("Activity %s deleted by %s", activity_id, caller_id)

    async def upload_images(
        self, activity_id: str, files: Iterable[ImageUpload], caller_id: str
    ) -> list[str]:
        """Store images for an activity and attach their URLs to it."""
        if self.objects is None:
            raise RuntimeError("No object store configured for image uploads")
        files = list(files)
        for f in files:
            validation.validate_image(f.content_type, len(f.content))
        row = await self._get_row(activity_id)
        await self._check_can_modify(row, caller_id, "edit")

        urls = []
        for index, f in enumerate(files):
            path = f"{activity_id}/{index}-{f.filename}"
            urls.append(
                await self.objects.upload(IMAGE_BUCKET, path, f.content, f.content_type)
            )
        await self.store.update(
            ACTIVITIES,
            {"id": activity_id},
            {
                "image_urls": list(row.get("image_urls") or []) + urls,
                "updated_at": _iso(self._clock()),
            },
        )
        return urls

    # ------------------------------------------------------------------
    # Reference data and statistics
    # ------------------------------------------------------------------
    async def categories(self) -> list[Category]:
        result = await self.store.query(CATEGORIES, TableQuery(order_by="name"))
        return [Category(**row) for row in result.rows]

    async def tags(self) -> list[Tag]:
        result = await self.store.query(TAGS, TableQuery(order_by="name"))
        return [Tag(**row) for row in result.rows]

    async def stats(self, organizer_id: str) -> ActivityStats:
        result = await self.store.query(
            ACTIVITIES, TableQuery().where("organizer_id", "eq", organizer_id)
        )
        rows = result.rows
        if not rows and self.owner_fallback:
            log.warning(
                "No activities for organizer %s; reporting stats for all activities",
                organizer_id,
            )
            rows = (await self.store.query(ACTIVITIES, TableQuery())).rows

        activities = [activity_from_row(r) for r in rows]
        now = _as_utc(self._clock())
        live = [a for a in activities if not a.is_deleted]
        created = [_as_utc(a.created_at) for a in activities]
        return ActivityStats(
            total=len(activities),
            active=len(live),
            # Upcoming: live activities that have not started yet.
            pending=sum(
                1 for a in live if a.start_date is not None and _as_utc(a.start_date) > now
            ),
            participants=sum(a.current_participants for a in live),
            this_month=sum(
                1 for c in created if (c.year, c.month) == (now.year, now.month)
            ),
        )
