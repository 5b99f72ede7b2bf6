"""
Per-datasource policies.

Each datasource decides, page by page, whether the page is public, when
it was published, whether it carries a custom slug, and which extra
metadata to store. Those decisions are expressed as small policy objects
with an ``evaluate`` (or ``extract``) method. Every policy slot on
``DataSourceConfig`` has a default:

==========================  ===================================
Slot                        Default
==========================  ===================================
publish_policy              AlwaysPublic (every page is public)
publish_date_policy         LastEditedPublishDate
slug_policy                 NoCustomSlug (slug from title)
metadata_extractor          None (meta stays null)
==========================  ===================================
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pagesync.errors import MetadataExtractionError
from pagesync.provider.schemas import PageProperty, PropertyType, SourcePage


class PublishPolicy(ABC):
    """Decides whether a page is publicly visible."""

    @abstractmethod
    def evaluate(self, page: SourcePage) -> bool | None:
        """Return True/False, or None to fall back to public."""


class PublishDatePolicy(ABC):
    """Decides the publish time of a public page."""

    @abstractmethod
    def evaluate(self, page: SourcePage) -> datetime | None:
        """Return a timestamp, or None to fall back to the last-edited time."""


class SlugPolicy(ABC):
    """Supplies an explicit slug chosen upstream."""

    @abstractmethod
    def evaluate(self, page: SourcePage) -> str | None:
        """Return the custom slug, or None to derive it from the title."""


class MetadataExtractor(ABC):
    """Builds the free-form ``meta`` object stored with a post."""

    @abstractmethod
    def extract(self, page: SourcePage) -> dict[str, Any] | None:
        ...


class AlwaysPublic(PublishPolicy):
    def evaluate(self, page: SourcePage) -> bool | None:
        return True


class PropertyValuePublishPolicy(PublishPolicy):
    """Public when a select/multi-select/rich-text property holds one of ``values``.

    Example: ``PropertyValuePublishPolicy("Status", ["Published"])`` or
    ``PropertyValuePublishPolicy("Tags", ["LIVE"])``.
    """

    def __init__(self, property_name: str, values: Iterable[str]):
        self.property_name = property_name
        self.values = frozenset(values)

    def evaluate(self, page: SourcePage) -> bool | None:
        prop = page.get(self.property_name)
        if prop is None:
            return False
        return any(value in self.values for value in prop.values() or [])


class CheckboxPublishPolicy(PublishPolicy):
    """Public when a checkbox property is ticked."""

    def __init__(self, property_name: str):
        self.property_name = property_name

    def evaluate(self, page: SourcePage) -> bool | None:
        prop = page.get(self.property_name)
        return bool(prop and prop.type == PropertyType.CHECKBOX and prop.checked)


class LastEditedPublishDate(PublishDatePolicy):
    def evaluate(self, page: SourcePage) -> datetime | None:
        return page.last_edited_time


class DatePropertyPublishDate(PublishDatePolicy):
    """Publish time read from a date property (start of the range)."""

    def __init__(self, property_name: str):
        self.property_name = property_name

    def evaluate(self, page: SourcePage) -> datetime | None:
        prop = page.get(self.property_name)
        if prop is None or prop.date is None:
            return None
        return prop.date.start


class NoCustomSlug(SlugPolicy):
    def evaluate(self, page: SourcePage) -> str | None:
        return None


class RichTextSlugPolicy(SlugPolicy):
    """Custom slug typed into a rich-text property (``Slug`` by default)."""

    def __init__(self, property_name: str = "Slug"):
        self.property_name = property_name

    def evaluate(self, page: SourcePage) -> str | None:
        prop = page.get(self.property_name)
        if prop is None or prop.text is None:
            return None
        return prop.text.strip() or None


class PropertyMetadataExtractor(MetadataExtractor):
    """Copies selected page properties into ``meta``.

    Args:
        properties: Mapping of meta key -> page property name.
        include_short_id: Add the provider unique id under ``short_id``.
        required: Meta keys whose property must be present; a missing one
            raises ``MetadataExtractionError``.
    """

    def __init__(
        self,
        properties: dict[str, str] | None = None,
        include_short_id: bool = False,
        required: Iterable[str] = (),
    ):
        self.properties = dict(properties or {})
        self.include_short_id = include_short_id
        self.required = frozenset(required)

    def extract(self, page: SourcePage) -> dict[str, Any] | None:
        meta: dict[str, Any] = {}
        for key, property_name in self.properties.items():
            prop = page.get(property_name)
            if prop is None:
                if key in self.required:
                    raise MetadataExtractionError(
                        f"Page {page.id} has no '{property_name}' property"
                    )
                continue
            meta[key] = _property_to_json(prop)

        if self.include_short_id:
            short_id = page.unique_id()
            if short_id is not None:
                meta["short_id"] = short_id

        return meta or None


def _property_to_json(prop: PageProperty) -> Any:
    """JSON-safe value of a property for storage in ``meta``."""
    if prop.type in (PropertyType.TITLE, PropertyType.RICH_TEXT):
        return prop.text or None
    if prop.type == PropertyType.SELECT:
        return prop.options[0] if prop.options else None
    if prop.type in (PropertyType.MULTI_SELECT, PropertyType.PEOPLE):
        return prop.values()
    if prop.type == PropertyType.DATE:
        if prop.date is None or prop.date.start is None:
            return None
        return prop.date.start.isoformat()
    if prop.type == PropertyType.CHECKBOX:
        return prop.checked
    if prop.type == PropertyType.UNIQUE_ID:
        return prop.unique_id.format() if prop.unique_id else None
    return None
