"""
Typed view of Notion pages.

Notion properties arrive as a tagged union keyed by ``type``. Each
supported tag gets its own payload field on ``PageProperty``; anything
else is kept as ``PropertyType.UNKNOWN`` with the provider's type name in
``raw_type`` so extraction can degrade to "no value" instead of failing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class PropertyType(str, Enum):
    """Property variants understood by the sync engine."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    PEOPLE = "people"
    UNIQUE_ID = "unique_id"
    DATE = "date"
    CHECKBOX = "checkbox"
    UNKNOWN = "unknown"


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat a naive datetime as UTC; aware values are returned unchanged."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 provider timestamp (``Z`` suffix or date-only) as UTC."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _plain_text(runs: list[dict[str, Any]] | None) -> str:
    return "".join(run.get("plain_text", "") for run in runs or [])


@dataclass(frozen=True)
class Person:
    """A user referenced by a people property."""

    id: str
    name: str | None = None


@dataclass(frozen=True)
class UniqueId:
    """Auto-incrementing id assigned by the provider, e.g. ``POST-42``."""

    number: int | None
    prefix: str | None = None

    def format(self) -> str | None:
        if self.number is None:
            return None
        if self.prefix:
            return f"{self.prefix}-{self.number}"
        return str(self.number)


@dataclass(frozen=True)
class DateValue:
    """Start/end of a date property."""

    start: datetime | None
    end: datetime | None = None


@dataclass(frozen=True)
class PageProperty:
    """
    One typed page property.

    Only the payload field matching ``type`` is populated.
    """

    type: PropertyType
    raw_type: str
    text: str | None = None
    options: tuple[str, ...] = ()
    people: tuple[Person, ...] = ()
    unique_id: UniqueId | None = None
    date: DateValue | None = None
    checked: bool | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "PageProperty":
        """Build a property from its Notion JSON representation."""
        raw_type = payload.get("type", "")
        try:
            prop_type = PropertyType(raw_type)
        except ValueError:
            return cls(type=PropertyType.UNKNOWN, raw_type=raw_type)

        if prop_type in (PropertyType.TITLE, PropertyType.RICH_TEXT):
            return cls(
                type=prop_type,
                raw_type=raw_type,
                text=_plain_text(payload.get(raw_type)),
            )

        if prop_type == PropertyType.SELECT:
            option = payload.get("select")
            return cls(
                type=prop_type,
                raw_type=raw_type,
                options=(option["name"],) if option else (),
            )

        if prop_type == PropertyType.MULTI_SELECT:
            return cls(
                type=prop_type,
                raw_type=raw_type,
                options=tuple(item["name"] for item in payload.get("multi_select") or []),
            )

        if prop_type == PropertyType.PEOPLE:
            return cls(
                type=prop_type,
                raw_type=raw_type,
                people=tuple(
                    Person(id=person["id"], name=person.get("name"))
                    for person in payload.get("people") or []
                ),
            )

        if prop_type == PropertyType.UNIQUE_ID:
            value = payload.get("unique_id") or {}
            return cls(
                type=prop_type,
                raw_type=raw_type,
                unique_id=UniqueId(number=value.get("number"), prefix=value.get("prefix")),
            )

        if prop_type == PropertyType.DATE:
            value = payload.get("date")
            return cls(
                type=prop_type,
                raw_type=raw_type,
                date=DateValue(
                    start=parse_timestamp(value.get("start")),
                    end=parse_timestamp(value.get("end")),
                )
                if value
                else None,
            )

        if prop_type == PropertyType.CHECKBOX:
            return cls(
                type=prop_type,
                raw_type=raw_type,
                checked=bool(payload.get("checkbox")),
            )

        return cls(type=PropertyType.UNKNOWN, raw_type=raw_type)

    def values(self) -> list[str] | None:
        """
        String-list reading of the property.

        Returns None for variants that have no such reading (title,
        unique id, date, checkbox, unknown).
        """
        extractor = _VALUE_EXTRACTORS.get(self.type)
        return extractor(self) if extractor else None


def _option_values(prop: PageProperty) -> list[str]:
    return list(prop.options)


def _people_values(prop: PageProperty) -> list[str]:
    return [person.name or person.id for person in prop.people]


def _text_values(prop: PageProperty) -> list[str]:
    return [prop.text] if prop.text else []


_VALUE_EXTRACTORS = {
    PropertyType.MULTI_SELECT: _option_values,
    PropertyType.SELECT: _option_values,
    PropertyType.PEOPLE: _people_values,
    PropertyType.RICH_TEXT: _text_values,
}


@dataclass(frozen=True)
class SourcePage:
    """
    One content item as read from the provider.

    Ephemeral: rebuilt from the API on every sync, never persisted as-is.
    """

    id: str
    last_edited_time: datetime
    created_time: datetime
    properties: dict[str, PageProperty] = field(default_factory=dict)
    parent_id: str | None = None
    url: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "SourcePage":
        """Build a page from a Notion page object."""
        parent = payload.get("parent") or {}
        return cls(
            id=payload["id"],
            last_edited_time=parse_timestamp(payload["last_edited_time"]),
            created_time=parse_timestamp(payload["created_time"]),
            properties={
                name: PageProperty.from_api(value)
                for name, value in (payload.get("properties") or {}).items()
            },
            parent_id=parent.get("data_source_id") or parent.get("database_id"),
            url=payload.get("url"),
        )

    def get(self, name: str) -> PageProperty | None:
        """Look up a property by name."""
        return self.properties.get(name)

    def unique_id(self) -> str | None:
        """Provider unique id formatted as ``PREFIX-N`` or ``N``, found by type."""
        for prop in self.properties.values():
            if prop.type == PropertyType.UNIQUE_ID and prop.unique_id is not None:
                return prop.unique_id.format()
        return None


@dataclass
class QueryResult:
    """One page of results from a datasource query."""

    pages: list[SourcePage]
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
