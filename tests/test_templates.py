"""
Tests for capupdate.templates.loader module.

Tests template loading including:
- Variable extraction and default stringification
- Main service resolution and parsing
- Skip reasons for auxiliary, unresolved and unparseable services
- Catalog discovery with filtering and limits
"""

from __future__ import annotations

from pathlib import Path

import pytest

from capupdate.exceptions import ConfigError
from capupdate.templates import discover_templates, load_template
from capupdate.templates.loader import extract_variables


class TestLoadTemplate:
    """Tests for load_template() against the fixture catalog."""

    def test_templated_main_service(self, apps_dir):
        """Test wordpress resolves its main image from variable defaults."""
        doc = load_template(apps_dir / "wordpress.yml")

        assert doc.file_name == "wordpress.yml"
        assert doc.display_name == "WordPress"
        assert len(doc.services) == 1

        service = doc.services[0]
        assert service.service_name == "$$cap_appname"
        assert service.original_image == "wordpress:$$cap_wp_version"
        assert service.resolved_image == "wordpress:6.7.0"
        assert service.has_variables
        assert service.parsed.full_name == "library/wordpress"
        assert service.parsed.tag == "6.7.0"

    def test_auxiliary_service_skipped(self, apps_dir):
        """Test the database service is recorded as skipped."""
        doc = load_template(apps_dir / "wordpress.yml")

        assert doc.skipped == ["$$cap_appname-db: auxiliary service"]

    def test_literal_image(self, apps_dir):
        """Test a literal image needs no variables."""
        doc = load_template(apps_dir / "ghost.yml")

        service = doc.services[0]
        assert service.resolved_image == "ghost:5.2.2"
        assert not service.has_variables
        assert service.parsed.tag == "5.2.2"

    def test_main_service_without_image(self, apps_dir):
        """Test a dockerfileLines build yields no services and no skips."""
        doc = load_template(apps_dir / "jupyter-lab.yml")

        assert doc.services == []
        assert doc.skipped == []
        assert doc.display_name == "JupyterLab"

    def test_no_main_service(self, apps_dir):
        """Test a template whose only service is auxiliary yields nothing."""
        doc = load_template(apps_dir / "supabase-postgres.yml")

        assert doc.services == []
        assert len(doc.skipped) == 1
        assert doc.variables["$$cap_app_version"] == "15.1.0"

    def test_unresolved_variable(self, create_text_file):
        """Test an image with a variable lacking a default is skipped."""
        path = create_text_file(
            "apps/demo.yml",
            "captainVersion: 4\n"
            "services:\n"
            "    $$cap_appname:\n"
            "        image: demo:$$cap_demo_version\n"
            "caproverOneClickApp:\n"
            "    variables:\n"
            "        - id: $$cap_demo_version\n"
            "          label: Version\n",
        )

        doc = load_template(path)

        assert doc.services == []
        assert "unresolved variables" in doc.skipped[0]

    def test_unparseable_image(self, create_text_file):
        """Test an untagged image is skipped rather than guessed at."""
        path = create_text_file(
            "apps/demo.yml",
            "services:\n    $$cap_appname:\n        image: demo\n",
        )

        doc = load_template(path)

        assert doc.services == []
        assert doc.skipped == ["$$cap_appname: unparseable image demo"]

    def test_suffixed_main_service(self, create_text_file):
        """Test "$$cap_appname-<stem>" is treated as the main service."""
        path = create_text_file(
            "apps/gitea.yml",
            "services:\n"
            "    $$cap_appname-gitea:\n"
            "        image: gitea/gitea:1.21.0\n",
        )

        doc = load_template(path)

        assert [s.parsed.full_name for s in doc.services] == ["gitea/gitea"]
        # Falls back to the file stem without displayName
        assert doc.display_name == "gitea"

    def test_invalid_yaml_raises(self, create_text_file):
        """Test malformed YAML raises ConfigError."""
        path = create_text_file("apps/broken.yml", "services: [unclosed\n")

        with pytest.raises(ConfigError, match="Error parsing YAML"):
            load_template(path)

    def test_non_utf8_raises(self, apps_dir):
        """Test undecodable bytes raise ConfigError."""
        path = apps_dir / "broken.yml"
        path.write_bytes(b"services:\n  x: \xff\xfe\n")

        with pytest.raises(ConfigError, match="not valid UTF-8"):
            load_template(path)

    def test_non_mapping_top_level_raises(self, create_text_file):
        """Test a list at top level raises ConfigError."""
        path = create_text_file("apps/list.yml", "- a\n- b\n")

        with pytest.raises(ConfigError, match="must be a mapping"):
            load_template(path)

    def test_missing_file_raises(self, tmp_test_dir):
        """Test a missing template raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_template(tmp_test_dir / "absent.yml")


class TestExtractVariables:
    """Tests for extract_variables()."""

    def test_numeric_defaults_stringified(self):
        """Test YAML numbers become strings."""
        bindings = extract_variables(
            {
                "caproverOneClickApp": {
                    "variables": [{"id": "$$cap_v", "defaultValue": 8.0}]
                }
            }
        )

        assert bindings[0].default_value == "8.0"

    def test_duplicates_keep_first(self):
        """Test repeated ids keep the first declaration."""
        bindings = extract_variables(
            {
                "caproverOneClickApp": {
                    "variables": [
                        {"id": "$$cap_v", "defaultValue": "1"},
                        {"id": "$$cap_v", "defaultValue": "2"},
                    ]
                }
            }
        )

        assert len(bindings) == 1
        assert bindings[0].default_value == "1"

    def test_malformed_entries_ignored(self):
        """Test entries without an id or of the wrong type are ignored."""
        bindings = extract_variables(
            {"caproverOneClickApp": {"variables": ["x", {"label": "no id"}]}}
        )

        assert bindings == []

    def test_missing_section(self):
        """Test templates without caproverOneClickApp have no variables."""
        assert extract_variables({}) == []


class TestDiscoverTemplates:
    """Tests for discover_templates()."""

    def test_sorted_yml_files(self, apps_dir):
        """Test all templates are listed in name order."""
        (apps_dir / "README.md").write_text("not a template")

        names = [p.name for p in discover_templates(apps_dir)]

        assert names == [
            "ghost.yml",
            "jupyter-lab.yml",
            "supabase-postgres.yml",
            "wordpress.yml",
        ]

    def test_filter_by_name(self, apps_dir):
        """Test restricting discovery to named templates."""
        paths = discover_templates(apps_dir, apps=["wordpress.yml", "nope.yml"])

        assert [p.name for p in paths] == ["wordpress.yml"]

    def test_limit(self, apps_dir):
        """Test the limit truncates after sorting."""
        paths = discover_templates(apps_dir, limit=2)

        assert [p.name for p in paths] == ["ghost.yml", "jupyter-lab.yml"]

    def test_missing_directory(self, tmp_test_dir):
        """Test a missing catalog directory raises ConfigError."""
        with pytest.raises(ConfigError, match="Apps directory not found"):
            discover_templates(Path(tmp_test_dir / "missing"))
