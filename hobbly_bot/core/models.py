"""Data models for Hobbly's core entities.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from dictionaries.
Wire translation (snake_case rows coming back from the backend) lives in the
data layer, these models only describe the application's own shape.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

from . import pagination

T = TypeVar("T")


class Role(str, Enum):
    """Closed set of roles an :class:`Identity` can hold."""

    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str | Role | None) -> Role:
        """Parse ``value`` case-insensitively, defaulting to :attr:`USER`."""
        if isinstance(value, Role):
            return value
        if not value:
            return cls.USER
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.USER


# Each role and every role it includes.
ROLE_HIERARCHY: dict[Role, frozenset[Role]] = {
    Role.ADMIN: frozenset({Role.ADMIN, Role.ORGANIZER, Role.USER}),
    Role.ORGANIZER: frozenset({Role.ORGANIZER, Role.USER}),
    Role.USER: frozenset({Role.USER}),
}


class ActivityType(str, Enum):
    ACTIVITY = "activity"
    EVENT = "event"
    HOBBY_OPPORTUNITY = "hobby_opportunity"
    CLUB = "club"
    COMPETITION = "competition"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def icon(self) -> str:
        return _TYPE_ICONS[self]


_TYPE_LABELS = {
    ActivityType.ACTIVITY: "Activity",
    ActivityType.EVENT: "Event",
    ActivityType.HOBBY_OPPORTUNITY: "Hobby opportunity",
    ActivityType.CLUB: "Club",
    ActivityType.COMPETITION: "Competition",
}

_TYPE_ICONS = {
    ActivityType.ACTIVITY: "📅",
    ActivityType.EVENT: "🎉",
    ActivityType.HOBBY_OPPORTUNITY: "⭐",
    ActivityType.CLUB: "👥",
    ActivityType.COMPETITION: "🏆",
}


class Identity(BaseModel):
    """The authenticated actor.

    Attributes
    ----------
    id:
        Backend user id (the auth provider's UUID).
    email:
        Sign-in email address.
    role:
        One of :class:`Role`.
    display_name:
        Full name shown in headers and greetings. Falls back to the email.
    organization_name:
        Organisation an organizer acts for, if any.
    phone:
        Optional contact number.

    """

    id: str
    email: str
    role: Role = Role.USER
    display_name: str = ""
    organization_name: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def name(self) -> str:
        return self.display_name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class Category(BaseModel):
    id: str
    name: str
    icon: str | None = None
    description: str | None = None


class Tag(BaseModel):
    id: str
    name: str
    color: str | None = None


class TagRef(BaseModel):
    """Reference to a :class:`Tag` as stored on an activity."""

    model_config = {"frozen": True}

    id: str
    name: str


class AgeRange(BaseModel):
    min_age: int | None = None
    max_age: int | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> AgeRange:
        if (
            self.min_age is not None
            and self.max_age is not None
            and self.min_age > self.max_age
        ):
            raise ValueError("min_age must not exceed max_age")
        return self

    def __str__(self) -> str:
        if self.min_age is not None and self.max_age is not None:
            return f"{self.min_age}-{self.max_age}"
        if self.min_age is not None:
            return f"{self.min_age}+"
        if self.max_age is not None:
            return f"up to {self.max_age}"
        return "all ages"


class Activity(BaseModel):
    """A listed hobby activity, event, club or competition.

    Activities are soft-deleted: ``is_deleted`` hides them from default
    listings while ``get_by_id`` still resolves them.
    """

    id: str
    title: str
    description: str
    short_description: str | None = None
    type: ActivityType = ActivityType.ACTIVITY
    category_id: str
    category: Category | None = None
    location: str
    address: str | None = None
    price: float = 0.0
    currency: str = "EUR"
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_participants: int | None = None
    current_participants: int = 0
    age_range: AgeRange | None = None
    organizer_id: str
    contact_email: str = ""
    contact_phone: str | None = None
    image_url: str | None = None
    external_link: str | None = None
    tags: set[TagRef] = Field(default_factory=set)
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def price_label(self) -> str:
        if self.price > 0:
            return f"{self.price:g} {self.currency}"
        return "Free"


class ActivityFormData(BaseModel):
    """Fields an organizer submits when creating or editing an activity."""

    title: str = ""
    description: str = ""
    type: ActivityType = ActivityType.ACTIVITY
    category_id: str = ""
    location: str = ""
    address: str | None = None
    price: float = 0.0
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_participants: int | None = None
    min_age: int | None = None
    max_age: int | None = None
    contact_email: str = ""
    contact_phone: str | None = None
    external_link: str | None = None
    tags: list[str] = Field(default_factory=list)


class ActivityFilters(BaseModel):
    search: str | None = None
    type: ActivityType | None = None
    category_id: str | None = None
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    organizer_id: str | None = None


class Page(BaseModel, Generic[T]):
    """One page of a listing together with its pagination metadata."""

    items: list[T] = Field(default_factory=list)
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_previous: bool = False

    @classmethod
    def build(cls, items: list[T], page: int, limit: int, total: int) -> Page[T]:
        """Create a page, deriving the navigation fields from ``total``."""
        total_pages = pagination.total_pages(total, limit) if limit > 0 else 0
        return cls(
            items=list(items)[:limit],
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class ActivityStats(BaseModel):
    total: int = 0
    active: int = 0
    pending: int = 0
    participants: int = 0
    this_month: int = 0
