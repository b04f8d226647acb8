"""Hobbly: a Discord front end for the Hobbly activity directory.

The most used pieces are re-exported here so callers can import them from
``hobbly_bot`` directly.
"""

from .core.authorization import Decision, decide, is_allowed
from .core.models import Activity, ActivityFilters, Identity, Page, Role
from .data.directory import ActivityDirectory
from .data.session import SessionRegistry, SessionStore

__all__ = [
    "Activity",
    "ActivityDirectory",
    "ActivityFilters",
    "Decision",
    "Identity",
    "Page",
    "Role",
    "SessionRegistry",
    "SessionStore",
    "decide",
    "is_allowed",
]
