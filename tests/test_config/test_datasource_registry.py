"""Tests for the datasource registry and credential resolution."""

import json

import pytest

from pagesync.errors import ConfigurationError
from pagesync.sync.config import (
    DataSourceConfig,
    load_datasource_configs,
    parse_datasource_entry,
    resolve_token,
)
from pagesync.sync.policies import (
    AlwaysPublic,
    CheckboxPublishPolicy,
    DatePropertyPublishDate,
    LastEditedPublishDate,
    NoCustomSlug,
    PropertyMetadataExtractor,
    PropertyValuePublishPolicy,
    RichTextSlugPolicy,
)


@pytest.fixture
def registry_file(tmp_path):
    def _write(entries) -> str:
        path = tmp_path / "datasources.json"
        path.write_text(json.dumps(entries))
        return str(path)

    return _write


class TestResolveToken:
    """Tests for resolve_token()."""

    def test_env_var_name(self, monkeypatch):
        monkeypatch.setenv("BLOG_NOTION_TOKEN", "secret_from_env")
        assert resolve_token("BLOG_NOTION_TOKEN", "blog") == "secret_from_env"

    def test_literal_token(self, monkeypatch):
        monkeypatch.delenv("secret_literal", raising=False)
        assert resolve_token("secret_literal", "blog") == "secret_literal"

    def test_default(self):
        assert resolve_token(None, "blog", default="secret_default") == "secret_default"
        assert resolve_token("  ", "blog", default="secret_default") == "secret_default"

    def test_missing(self):
        with pytest.raises(ConfigurationError, match="blog"):
            resolve_token(None, "blog")


class TestParseEntry:
    """Tests for parse_datasource_entry()."""

    def test_minimal_entry_uses_defaults(self):
        config = parse_datasource_entry({"alias": "blog", "data_source_id": "ds-blog"})

        assert isinstance(config.publish_policy, AlwaysPublic)
        assert isinstance(config.publish_date_policy, LastEditedPublishDate)
        assert isinstance(config.slug_policy, NoCustomSlug)
        assert config.metadata_extractor is None
        assert config.token is None

    def test_full_entry(self):
        config = parse_datasource_entry(
            {
                "alias": "blog",
                "data_source_id": "ds-blog",
                "token": "BLOG_TOKEN",
                "publish": {"property": "Status", "values": ["Published"]},
                "publish_date_property": "Publish Date",
                "slug_property": "Slug",
                "slug_sync_property": "Slug",
                "tags_property": "Tags",
                "authors_property": "Authors",
                "metadata": {"properties": {"summary": "Summary"}, "include_short_id": True},
            }
        )

        assert isinstance(config.publish_policy, PropertyValuePublishPolicy)
        assert config.publish_policy.values == frozenset({"Published"})
        assert isinstance(config.publish_date_policy, DatePropertyPublishDate)
        assert isinstance(config.slug_policy, RichTextSlugPolicy)
        assert isinstance(config.metadata_extractor, PropertyMetadataExtractor)
        assert config.metadata_extractor.include_short_id
        assert config.tags_property == "Tags"
        assert config.slug_sync_property == "Slug"

    def test_checkbox_publish(self):
        config = parse_datasource_entry(
            {"alias": "a", "data_source_id": "b", "publish": {"property": "Public", "checkbox": True}}
        )
        assert isinstance(config.publish_policy, CheckboxPublishPolicy)

    def test_publish_without_values(self):
        with pytest.raises(ConfigurationError):
            parse_datasource_entry({"alias": "a", "data_source_id": "b", "publish": {"property": "Status"}})

    def test_missing_id(self):
        with pytest.raises(ConfigurationError, match="data_source_id"):
            parse_datasource_entry({"alias": "a"})


class TestLoadDatasourceConfigs:
    """Tests for load_datasource_configs()."""

    def test_loads_list(self, registry_file):
        path = registry_file(
            [
                {"alias": "blog", "data_source_id": "ds-blog"},
                {"alias": "docs", "data_source_id": "ds-docs"},
            ]
        )

        configs = load_datasource_configs(path)

        assert [c.alias for c in configs] == ["blog", "docs"]
        assert all(isinstance(c, DataSourceConfig) for c in configs)

    def test_default_path_from_settings(self, registry_file, monkeypatch):
        path = registry_file([{"alias": "blog", "data_source_id": "ds-blog"}])
        monkeypatch.setenv("DATASOURCES_FILE", path)
        assert [c.alias for c in load_datasource_configs()] == ["blog"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_datasource_configs(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_datasource_configs(path)

    def test_not_a_list(self, registry_file):
        with pytest.raises(ConfigurationError, match="list"):
            load_datasource_configs(registry_file({"alias": "blog"}))

    def test_duplicate_alias(self, registry_file):
        path = registry_file(
            [
                {"alias": "blog", "data_source_id": "ds-1"},
                {"alias": "blog", "data_source_id": "ds-2"},
            ]
        )
        with pytest.raises(ConfigurationError, match="Duplicate"):
            load_datasource_configs(path)

    def test_matches(self):
        config = DataSourceConfig(alias="blog", data_source_id="ds-blog")
        assert config.matches("blog")
        assert config.matches("ds-blog")
        assert not config.matches("docs")
