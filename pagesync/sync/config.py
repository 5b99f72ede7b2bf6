"""
Sync configuration.

- SyncConfig: engine-wide knobs (``SYNC_*`` environment variables)
- DataSourceConfig: one immutable bundle per synchronized datasource
- load_datasource_configs(): builds the registry from a JSON file

Registry file format::

    [
      {
        "alias": "blog",
        "data_source_id": "2f1c...",
        "token": "NOTION_BLOG_TOKEN",
        "publish": {"property": "Status", "values": ["Published"]},
        "publish_date_property": "Publish Date",
        "slug_property": "Slug",
        "slug_sync_property": "Slug",
        "tags_property": "Tags",
        "authors_property": "Authors",
        "metadata": {"properties": {"summary": "Summary"}, "include_short_id": true}
      }
    ]
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pagesync.config.settings import get_settings
from pagesync.errors import ConfigurationError
from pagesync.sync.policies import (
    AlwaysPublic,
    CheckboxPublishPolicy,
    DatePropertyPublishDate,
    LastEditedPublishDate,
    MetadataExtractor,
    NoCustomSlug,
    PropertyMetadataExtractor,
    PropertyValuePublishPolicy,
    PublishDatePolicy,
    PublishPolicy,
    RichTextSlugPolicy,
    SlugPolicy,
)

logger = logging.getLogger(__name__)


class SyncConfig(BaseSettings):
    """Engine-wide sync settings."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        case_sensitive=False,
        extra="ignore",
    )

    default_lookback_minutes: int = Field(
        default=5,
        ge=1,
        description="Incremental window used when no 'since' is given",
    )


@dataclass(frozen=True)
class DataSourceConfig:
    """Configuration for one datasource, fixed for the lifetime of a run.

    Attributes:
        alias: Short human name, used in logs and to select datasources.
        data_source_id: Provider database id; also the ``datasource_id``
            stored on every record.
        token: Credential reference (see ``resolve_token``).
        publish_policy: Public/unlisted decision per page.
        publish_date_policy: Publish time per public page.
        slug_policy: Custom slug per page.
        metadata_extractor: Builds ``meta``; None leaves it null.
        tags_property: Property holding tags.
        authors_property: Property holding authors.
        slug_sync_property: Rich-text property that receives the final slug.
    """

    alias: str
    data_source_id: str
    token: str | None = None
    publish_policy: PublishPolicy = field(default_factory=AlwaysPublic)
    publish_date_policy: PublishDatePolicy = field(default_factory=LastEditedPublishDate)
    slug_policy: SlugPolicy = field(default_factory=NoCustomSlug)
    metadata_extractor: MetadataExtractor | None = None
    tags_property: str | None = None
    authors_property: str | None = None
    slug_sync_property: str | None = None

    def matches(self, identifier: str) -> bool:
        """True when ``identifier`` is this datasource's alias or provider id."""
        return identifier in (self.alias, self.data_source_id)


def resolve_token(value: str | None, alias: str, default: str | None = None) -> str:
    """
    Resolve a datasource credential reference.

    - The name of a set environment variable resolves to that variable
    - Any other non-empty value is used as the token itself
    - Empty/missing falls back to ``default`` (the NOTION_TOKEN setting)

    Raises:
        ConfigurationError: No token could be resolved.
    """
    if value and value.strip():
        from_env = os.environ.get(value.strip())
        if from_env:
            return from_env
        return value.strip()

    if default:
        return default

    raise ConfigurationError(
        f"Missing token for datasource '{alias}'. Set NOTION_TOKEN or "
        f"specify 'token' in the datasource configuration."
    )


def _parse_publish_policy(spec: dict[str, Any] | None) -> PublishPolicy:
    if not spec:
        return AlwaysPublic()
    property_name = spec.get("property")
    if not property_name:
        raise ConfigurationError("'publish' requires a 'property'")
    if spec.get("checkbox"):
        return CheckboxPublishPolicy(property_name)
    values = spec.get("values")
    if not values:
        raise ConfigurationError(
            f"'publish' on property '{property_name}' needs 'values' or 'checkbox'"
        )
    return PropertyValuePublishPolicy(property_name, values)


def _parse_metadata_extractor(spec: dict[str, Any] | None) -> MetadataExtractor | None:
    if not spec:
        return None
    return PropertyMetadataExtractor(
        properties=spec.get("properties", {}),
        include_short_id=spec.get("include_short_id", False),
        required=spec.get("required", ()),
    )


def parse_datasource_entry(entry: dict[str, Any]) -> DataSourceConfig:
    """Convert one registry entry to a DataSourceConfig."""
    try:
        alias = entry["alias"]
        data_source_id = entry["data_source_id"]
    except KeyError as e:
        raise ConfigurationError(f"Datasource entry missing {e.args[0]!r}") from e

    publish_date_property = entry.get("publish_date_property")
    slug_property = entry.get("slug_property")

    return DataSourceConfig(
        alias=alias,
        data_source_id=data_source_id,
        token=entry.get("token"),
        publish_policy=_parse_publish_policy(entry.get("publish")),
        publish_date_policy=(
            DatePropertyPublishDate(publish_date_property)
            if publish_date_property
            else LastEditedPublishDate()
        ),
        slug_policy=RichTextSlugPolicy(slug_property) if slug_property else NoCustomSlug(),
        metadata_extractor=_parse_metadata_extractor(entry.get("metadata")),
        tags_property=entry.get("tags_property"),
        authors_property=entry.get("authors_property"),
        slug_sync_property=entry.get("slug_sync_property"),
    )


def load_datasource_configs(path: Path | str | None = None) -> list[DataSourceConfig]:
    """
    Load the datasource registry from JSON.

    Args:
        path: Registry file (defaults to the DATASOURCES_FILE setting).

    Raises:
        ConfigurationError: Missing file, malformed JSON or duplicate aliases.
    """
    registry_path = Path(path or get_settings().datasources_file)
    try:
        with open(registry_path) as f:
            entries = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Datasource registry not found: {registry_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {registry_path}: {e}") from e

    if not isinstance(entries, list):
        raise ConfigurationError(f"{registry_path} must contain a JSON list")

    configs = [parse_datasource_entry(entry) for entry in entries]

    aliases = [c.alias for c in configs]
    duplicates = sorted({a for a in aliases if aliases.count(a) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate datasource aliases: {duplicates}")

    logger.info("Loaded %d datasources from %s", len(configs), registry_path)
    return configs
