"""Activity pages: the organizer table, trash bin, public browsing, the
detail view and the create/edit form.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC
from typing import Any

from ..core.errors import ValidationError
from ..core.models import (
    Activity,
    ActivityFilters,
    ActivityFormData,
    ActivityType,
    Category,
    Page,
)
from ..data.directory import ImageUpload
from ..ui.components import Button, Column, Input, Pagination, Table
from .base import PageController, Screen

# The organizer table shows five rows per page.
ACTIVITIES_PAGE_SIZE = 5

DATE_FORMAT = "%d.%m.%Y"
DATETIME_INPUT_FORMAT = "%Y-%m-%d %H:%M"


def format_date(value: datetime.datetime | None) -> str:
    return value.strftime(DATE_FORMAT) if value is not None else "-"


def status_label(activity: Activity) -> str:
    return "Rejected" if activity.is_deleted else "Approved"


def category_label(categories: Mapping[str, Category]) -> Callable[[Any, Activity], str]:
    def render(_value: Any, activity: Activity) -> str:
        category = activity.category or categories.get(activity.category_id)
        if category is None:
            return "Uncategorized"
        return f"{category.icon} {category.name}" if category.icon else category.name

    return render


def activity_columns(categories: Mapping[str, Category]) -> list[Column]:
    return [
        Column("category", "Category", render=category_label(categories)),
        Column("type", "Type", render=lambda _v, a: a.type.label),
        Column("start_date", "Date", render=lambda v, _a: format_date(v)),
        Column("address", "Address", render=lambda v, a: v or a.location or "-"),
        Column("price", "Price", render=lambda _v, a: a.price_label, align="right"),
        Column("is_deleted", "Status", render=lambda _v, a: status_label(a)),
    ]


def browse_columns() -> list[Column]:
    return [
        Column("title", "Title"),
        Column("type", "Type", render=lambda _v, a: f"{a.type.icon} {a.type.label}"),
        Column("location", "Location"),
        Column("start_date", "Date", render=lambda v, _a: format_date(v)),
        Column("price", "Price", render=lambda _v, a: a.price_label, align="right"),
    ]


def trash_columns() -> list[Column]:
    return [
        Column("title", "Title"),
        Column("type", "Type", render=lambda _v, a: a.type.label),
        Column("location", "Location"),
        Column("updated_at", "Deleted", render=lambda v, _a: format_date(v)),
    ]


def parse_datetime(text: str) -> datetime.datetime:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM-DD HH:MM``; naive values are UTC."""
    value = datetime.datetime.fromisoformat(text.strip())
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


_NUMBER_FIELDS = {"price": float, "max_participants": int, "min_age": int, "max_age": int}
_DATE_FIELDS = ("start_date", "end_date")
_PARSE_ERRORS = {
    "start_date": "Use the format YYYY-MM-DD HH:MM",
    "end_date": "Use the format YYYY-MM-DD HH:MM",
    "type": "Unknown activity type",
}


def parse_activity_form(values: Mapping[str, Any]) -> ActivityFormData:
    """Build :class:`ActivityFormData` from raw text inputs.

    Unknown names and blank numeric or date values are dropped. Every
    unparseable value is reported at once in a :class:`ValidationError`.
    """
    data: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for name, raw in values.items():
        if name not in ActivityFormData.model_fields or raw is None:
            continue
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw and (name in _NUMBER_FIELDS or name in _DATE_FIELDS):
                continue
            try:
                if name in _NUMBER_FIELDS:
                    raw = _NUMBER_FIELDS[name](raw.replace(",", "."))
                elif name in _DATE_FIELDS:
                    raw = parse_datetime(raw)
                elif name == "type":
                    raw = ActivityType(raw)
                elif name == "tags":
                    raw = [t.strip() for t in raw.split(",") if t.strip()]
            except ValueError:
                errors[name] = _PARSE_ERRORS.get(name, "Please enter a number")
                continue
        data[name] = raw
    if errors:
        raise ValidationError(errors)
    return ActivityFormData(**data)


def form_from_activity(activity: Activity) -> ActivityFormData:
    age = activity.age_range
    return ActivityFormData(
        title=activity.title,
        description=activity.description,
        type=activity.type,
        category_id=activity.category_id,
        location=activity.location,
        address=activity.address,
        price=activity.price,
        start_date=activity.start_date,
        end_date=activity.end_date,
        max_participants=activity.max_participants,
        min_age=age.min_age if age else None,
        max_age=age.max_age if age else None,
        contact_email=activity.contact_email,
        contact_phone=activity.contact_phone,
        external_link=activity.external_link,
        tags=sorted(t.id for t in activity.tags),
    )


class ActivitiesPage(PageController):
    """Organizer table of activities with search, pagination and delete."""

    route = "activities"
    title = "ACTIVITIES"
    page_limit = ACTIVITIES_PAGE_SIZE

    async def _load(self, page: int, search: str) -> Page[Activity]:
        identity = self._user()
        if search:
            owner = None if identity.is_admin else identity.id
            filters = ActivityFilters(search=search, organizer_id=owner)
            return await self.directory.list(filters, page, self.page_limit)
        if identity.is_admin:
            return await self.directory.list(None, page, self.page_limit)
        return await self.directory.list_for_owner(identity.id, page, self.page_limit)

    async def render(self, page: int = 1, search: str = "", **kwargs: Any) -> Screen:
        search = (search or "").strip()
        result = await self._load(page, search)
        if not result.items and result.page > 1 and result.total_pages:
            # Stepped past the end, e.g. after deleting the last row of a page.
            result = await self._load(result.total_pages, search)
        categories = {c.id: c for c in await self.directory.categories()}
        lines = [f'Results for "{search}"'] if search else []
        return self.screen(
            lines=lines,
            table=Table(
                activity_columns(categories),
                result.items,
                empty_message="No activities found",
            ),
            pagination=Pagination.for_page(result),
            actions=[Button("Create Activity", "activity_editor")],
            state={"page": result.page, "search": search, "total": result.total},
            **kwargs,
        )

    async def search(self, term: str) -> Screen:
        return await self.open(page=1, search=term)

    async def go_to(self, page: int, search: str = "") -> Screen:
        return await self.open(page=page, search=search)

    async def delete(self, activity_id: str, page: int = 1, search: str = "") -> Screen:
        return await self.guard(self._delete, activity_id, page, search)

    async def _delete(self, activity_id: str, page: int, search: str) -> Screen:
        await self.directory.soft_delete(activity_id, self._user().id)
        return await self.render(page=page, search=search, notice="Activity deleted.")


class UsersPage(ActivitiesPage):
    """Admin-only listing reached from the Users menu entry."""

    route = "users"
    title = "USERS"
    required_roles = frozenset({"admin"})


class TrashPage(PageController):
    route = "trash"
    title = "TRASH BIN"

    async def render(self, page: int = 1, **kwargs: Any) -> Screen:
        result = await self.directory.list_deleted(self._user().id, page, self.page_size)
        return self.screen(
            table=Table(trash_columns(), result.items, empty_message="Trash bin is empty"),
            pagination=Pagination.for_page(result),
            state={"page": result.page, "total": result.total},
        )


class BrowsePage(PageController):
    """Public listing for end users, with search and filters."""

    route = "browse"
    title = "Discover activities"
    requires_login = False

    async def render(
        self,
        page: int = 1,
        search: str | None = None,
        type: str | ActivityType | None = None,
        category_id: str | None = None,
        location: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        **kwargs: Any,
    ) -> Screen:
        if isinstance(type, str):
            try:
                type = ActivityType(type) if type else None
            except ValueError:
                raise ValidationError({"type": "Unknown activity type"}) from None
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError({"max_price": "Maximum price must not be below minimum"})
        filters = ActivityFilters(
            search=search or None,
            type=type,
            category_id=category_id or None,
            location=location or None,
            min_price=min_price,
            max_price=max_price,
        )
        result = await self.directory.list(filters, page, self.page_size)
        return self.screen(
            table=Table(browse_columns(), result.items, empty_message="No activities found"),
            pagination=Pagination.for_page(result),
            state={
                "page": result.page,
                "total": result.total,
                "filters": filters.model_dump(mode="json", exclude_none=True),
            },
        )


class ActivityDetailPage(PageController):
    route = "activity"
    title = "Activity"
    requires_login = False

    def can_modify(self, activity: Activity) -> bool:
        identity = self.identity
        if identity is None or not self.session.is_authenticated:
            return False
        return identity.is_admin or identity.id == activity.organizer_id

    async def render(self, activity_id: str = "", **kwargs: Any) -> Screen:
        activity = await self.directory.get_by_id(activity_id)
        category = activity.category
        if category is None and activity.category_id:
            lookup = {c.id: c for c in await self.directory.categories()}
            category = lookup.get(activity.category_id)

        lines = [
            f"{activity.type.icon} {activity.type.label}"
            + (f" · {category.name}" if category else ""),
            activity.description,
            f"Where: {activity.location}"
            + (f", {activity.address}" if activity.address else ""),
        ]
        if activity.start_date:
            when = activity.start_date.strftime("%d.%m.%Y %H:%M")
            if activity.end_date:
                when += " – " + activity.end_date.strftime("%d.%m.%Y %H:%M")
            lines.append(f"When: {when}")
        lines.append(f"Price: {activity.price_label}")
        if activity.max_participants:
            lines.append(
                f"Participants: {activity.current_participants}/{activity.max_participants}"
            )
        if activity.age_range:
            lines.append(f"Ages: {activity.age_range}")
        contact = activity.contact_email
        if activity.contact_phone:
            contact = f"{contact}, {activity.contact_phone}" if contact else activity.contact_phone
        if contact:
            lines.append(f"Contact: {contact}")
        if activity.external_link:
            lines.append(f"More: {activity.external_link}")
        if activity.tags:
            lines.append("Tags: " + ", ".join(sorted(t.name for t in activity.tags)))
        if activity.is_deleted:
            lines.append(f"Status: {status_label(activity)}")

        actions = []
        if self.can_modify(activity) and not activity.is_deleted:
            actions = [
                Button("Edit", "activity_editor", payload={"activity_id": activity.id}),
                Button(
                    "Delete",
                    "delete_activity",
                    variant="danger",
                    payload={"activity_id": activity.id},
                ),
            ]
        return self.screen(
            title=activity.title,
            lines=lines,
            actions=actions,
            state={"activity_id": activity.id, "image_url": activity.image_url},
        )


class ActivityEditorPage(PageController):
    """Create and edit form for activities."""

    route = "activity_editor"
    title = "Create Activity"

    @staticmethod
    def fields_for(form: ActivityFormData) -> list[Input]:
        def text(value: Any) -> str:
            if value is None:
                return ""
            if isinstance(value, datetime.datetime):
                return value.strftime(DATETIME_INPUT_FORMAT)
            return str(value)

        return [
            Input("Title", "title", text(form.title), required=True),
            Input("Description", "description", text(form.description), required=True),
            Input("Type", "type", form.type.value, required=True),
            Input("Category", "category_id", text(form.category_id), required=True),
            Input("Location", "location", text(form.location), required=True),
            Input("Address", "address", text(form.address)),
            Input("Price", "price", f"{form.price:g}", helper="0 for free"),
            Input("Start", "start_date", text(form.start_date), helper="YYYY-MM-DD HH:MM"),
            Input("End", "end_date", text(form.end_date), helper="YYYY-MM-DD HH:MM"),
            Input("Max participants", "max_participants", text(form.max_participants)),
            Input("Min age", "min_age", text(form.min_age)),
            Input("Max age", "max_age", text(form.max_age)),
            Input("Contact email", "contact_email", text(form.contact_email), required=True),
            Input("Contact phone", "contact_phone", text(form.contact_phone)),
            Input("Link", "external_link", text(form.external_link)),
        ]

    async def render(self, activity_id: str | None = None, **kwargs: Any) -> Screen:
        if not activity_id:
            return self.screen(
                fields=self.fields_for(
                    ActivityFormData(contact_email=self._user().email)
                ),
                actions=[Button("Save", "save_activity")],
            )
        activity = await self.directory.get_by_id(activity_id)
        return self.screen(
            title="Edit Activity",
            fields=self.fields_for(form_from_activity(activity)),
            actions=[Button("Save", "save_activity", payload={"activity_id": activity_id})],
            state={"activity_id": activity_id},
        )

    async def create(self, values: Mapping[str, Any]) -> Screen:
        return await self.guard(self._save, None, values)

    async def edit(self, activity_id: str, changes: Mapping[str, Any]) -> Screen:
        """Apply ``changes`` on top of the stored activity and save it."""
        return await self.guard(self._save, activity_id, changes)

    async def _save(self, activity_id: str | None, values: Mapping[str, Any]) -> Screen:
        caller = self._user()
        merged: dict[str, Any] = {}
        if activity_id:
            current = await self.directory.get_by_id(activity_id)
            merged = form_from_activity(current).model_dump()
        merged.update({k: v for k, v in values.items() if v is not None})
        try:
            form = parse_activity_form(merged)
            if activity_id:
                activity = await self.directory.update(activity_id, form, caller.id)
                notice = "Activity updated."
            else:
                activity = await self.directory.create(form, caller.id)
                notice = "Activity created."
        except ValidationError as exc:
            title = "Edit Activity" if activity_id else self.title
            fields = self.fields_for(ActivityFormData.model_construct(**_loose(merged)))
            return self.failed(exc, title=title, fields=fields)
        return self.screen(
            notice=notice,
            redirect="activity",
            state={"activity_id": activity.id},
        )

    async def upload(self, activity_id: str, files: Iterable[ImageUpload]) -> Screen:
        return await self.guard(self._upload, activity_id, list(files))

    async def _upload(self, activity_id: str, files: list[ImageUpload]) -> Screen:
        urls = await self.directory.upload_images(activity_id, files, self._user().id)
        return self.screen(
            notice=f"Uploaded {len(urls)} image(s).",
            redirect="activity",
            state={"activity_id": activity_id, "image_urls": urls},
        )


def _loose(values: Mapping[str, Any]) -> dict[str, Any]:
    """Best-effort values for redisplaying a rejected form."""
    defaults = ActivityFormData().model_dump()
    out = dict(defaults)
    for name, value in values.items():
        if name not in defaults or value is None:
            continue
        if name == "type":
            try:
                value = ActivityType(value)
            except ValueError:
                value = ActivityType.ACTIVITY
        elif name == "price":
            try:
                value = float(value)
            except (TypeError, ValueError):
                value = 0.0
        out[name] = value
    return out
