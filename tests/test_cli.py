"""
Tests for capupdate.cli module.

Tests the command-line interface including:
- Argument parsing (subcommands, mutually exclusive flags)
- validate command output and exit codes
- check command end to end against mocked Docker Hub responses
- github command (rate limit status, repository and image lookups)
"""

from __future__ import annotations

import json

import pytest
import requests_mock

from capupdate.cli import _split_apps, build_parser, main

WORDPRESS_TAGS = "https://hub.docker.com/v2/repositories/library/wordpress/tags"
GHOST_TAGS = "https://hub.docker.com/v2/repositories/library/ghost/tags"


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


@pytest.fixture
def workspace(tmp_test_dir, apps_dir, create_yaml_file, monkeypatch):
    """Working directory with a catalog and a no-delay config file."""
    monkeypatch.chdir(tmp_test_dir)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    create_yaml_file(
        "capupdate.yaml",
        {
            "apps_dir": "apps",
            "output_dir": "reports",
            "dockerhub": {"delay": 0},
            "github": {"delay": 0},
        },
    )
    return tmp_test_dir


def _tags(*names: str) -> dict:
    return {
        "results": [
            {"name": n, "last_updated": "2025-01-01T00:00:00Z"} for n in names
        ]
    }


class TestParser:
    """Tests for build_parser()."""

    def test_command_required(self, capsys):
        """Test running without a subcommand is a usage error."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args([])

        assert exc.value.code == 2

    def test_apply_and_dry_run_exclusive(self):
        """Test --apply and --dry-run cannot be combined."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["check", "--apply", "--dry-run"])

    def test_github_requires_mode(self):
        """Test github needs one of --test, --repo or --image."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["github"])

    def test_check_defaults(self):
        """Test check flag defaults."""
        args = build_parser().parse_args(["check"])

        assert args.apps is None
        assert args.limit is None
        assert not args.no_github
        assert not args.apply

    def test_split_apps(self):
        """Test --apps parsing appends .yml where missing."""
        assert _split_apps("wordpress.yml, ghost") == ["wordpress.yml", "ghost.yml"]
        assert _split_apps("") is None
        assert _split_apps(None) is None


class TestValidateCommand:
    """Tests for 'capupdate validate'."""

    def test_valid_template(self, apps_dir, capsys):
        """Test a valid template exits 0."""
        code = _run(["validate", str(apps_dir / "wordpress.yml")])

        out = capsys.readouterr().out
        assert code == 0
        assert "VALIDATION RESULTS" in out
        assert "Status:        VALID" in out
        assert "[SUCCESS] Template is valid!" in out

    def test_invalid_template(self, create_text_file, capsys):
        """Test an invalid template exits 1 and lists errors."""
        path = create_text_file("bad.yml", "- not a mapping\n")

        code = _run(["validate", str(path)])

        out = capsys.readouterr().out
        assert code == 1
        assert "[X] Template must be a YAML dictionary/mapping" in out
        assert "[FAILED] Template validation failed with 1 error(s)." in out

    def test_warnings_printed(self, apps_dir, capsys):
        """Test warnings are shown for valid templates."""
        code = _run(["validate", str(apps_dir / "jupyter-lab.yml")])

        out = capsys.readouterr().out
        assert code == 0
        assert "[WARNING]" in out


class TestCheckCommand:
    """Tests for 'capupdate check'."""

    def test_docker_hub_only_scan(self, workspace, capsys):
        """Test a full scan writes both reports and prints the summary."""
        with requests_mock.Mocker() as m:
            m.get(WORDPRESS_TAGS, json=_tags("latest", "6.7.1", "6.7.0"))
            m.get(GHOST_TAGS, json=_tags("5.2.2"))
            code = _run(["check", "--no-github", "--no-cache"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Mode:              dockerhub-only" in out
        assert "wordpress.yml: library/wordpress 6.7.0 -> 6.7.1 (patch)" in out
        assert "[SUCCESS] Update check complete!" in out

        reports = workspace / "reports"
        json_files = list(reports.glob("update-report-*.json"))
        assert len(json_files) == 1
        assert len(list(reports.glob("update-report-*.md"))) == 1

        data = json.loads(json_files[0].read_text(encoding="utf-8"))
        assert data["totalFiles"] == 4
        assert data["appsChecked"] == 2
        assert data["appsSkipped"] == 2
        assert data["summary"]["patch"] == 1
        assert data["updates"][0]["latestVersion"] == "6.7.1"

    def test_lookup_failure_does_not_fail_scan(self, workspace, capsys):
        """Test API errors are logged and the scan still succeeds."""
        with requests_mock.Mocker() as m:
            m.get(WORDPRESS_TAGS, status_code=500)
            m.get(GHOST_TAGS, status_code=500)
            code = _run(["check", "--no-github", "--no-cache"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Updates Available: 0" in out
        assert "WARNING" in out

    def test_cache_written(self, workspace):
        """Test the response cache is saved after a scan."""
        with requests_mock.Mocker() as m:
            m.get(WORDPRESS_TAGS, json=_tags("6.7.1"))
            m.get(GHOST_TAGS, json=_tags("5.2.2"))
            assert _run(["check", "--no-github"]) == 0

        cache_file = workspace / ".version-cache" / "versions.json"
        entries = json.loads(cache_file.read_text(encoding="utf-8"))["entries"]
        assert "dockerhub:library/wordpress" in entries
        assert "dockerhub:library/ghost" in entries

    def test_dry_run(self, workspace, capsys):
        """Test --dry-run reports changes without touching templates."""
        template = workspace / "apps" / "wordpress.yml"
        original = template.read_text(encoding="utf-8")

        with requests_mock.Mocker() as m:
            m.get(WORDPRESS_TAGS, json=_tags("6.7.1"))
            code = _run(
                [
                    "check",
                    "--no-github",
                    "--no-cache",
                    "--apps",
                    "wordpress",
                    "--dry-run",
                ]
            )

        out = capsys.readouterr().out
        assert code == 0
        assert "APPLY RESULTS (DRY RUN)" in out
        assert "[DRY-RUN] wordpress.yml: 6.7.0 -> 6.7.1" in out
        assert template.read_text(encoding="utf-8") == original

    def test_apply_patch_only(self, workspace, capsys):
        """Test --apply --patch-only rewrites the template."""
        template = workspace / "apps" / "wordpress.yml"

        with requests_mock.Mocker() as m:
            m.get(WORDPRESS_TAGS, json=_tags("6.7.1"))
            code = _run(
                [
                    "check",
                    "--no-github",
                    "--no-cache",
                    "--apps",
                    "wordpress.yml",
                    "--apply",
                    "--patch-only",
                ]
            )

        assert code == 0
        assert "defaultValue: '6.7.1'" in template.read_text(encoding="utf-8")

    def test_missing_apps_dir(self, workspace, capsys):
        """Test a missing catalog directory exits 1."""
        code = _run(
            ["check", "--no-github", "--no-cache", "--apps-dir", "does-not-exist"]
        )

        out = capsys.readouterr().out
        assert code == 1
        assert "Error: Apps directory not found" in out


class TestGitHubCommand:
    """Tests for 'capupdate github'."""

    def test_rate_limit_status(self, workspace, capsys):
        """Test --test prints the rate limit."""
        with requests_mock.Mocker() as m:
            m.get(
                "https://api.github.com/rate_limit",
                json={
                    "resources": {"core": {"limit": 60, "remaining": 59, "reset": 0}}
                },
            )
            code = _run(["github", "--test"])

        out = capsys.readouterr().out
        assert code == 0
        assert "GITHUB API STATUS" in out
        assert "Rate Limit:      60/hour" in out
        assert "Authenticated:   no" in out

    def test_repo_lookup(self, workspace, capsys):
        """Test --repo prints the latest release."""
        with requests_mock.Mocker() as m:
            m.get(
                "https://api.github.com/repos/TryGhost/Ghost/releases",
                json=[{"tag_name": "v5.3.0"}, {"tag_name": "v5.2.2"}],
            )
            code = _run(["github", "--repo", "TryGhost/Ghost"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Latest Version:  5.3.0" in out
        assert "Recent Releases: 5.3.0, 5.2.2" in out

    def test_image_lookup(self, workspace, capsys):
        """Test --image maps an official image through the built-in map."""
        with requests_mock.Mocker() as m:
            m.get(
                "https://api.github.com/repos/TryGhost/Ghost/releases",
                json=[{"tag_name": "v5.3.0"}],
            )
            code = _run(["github", "--image", "ghost:5.2.2"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Repository:      TryGhost/Ghost" in out
        assert "Current Tag:     5.2.2" in out

    def test_invalid_image(self, workspace, capsys):
        """Test an unparseable image exits 1."""
        code = _run(["github", "--image", "not-an-image"])

        out = capsys.readouterr().out
        assert code == 1
        assert "Error: Invalid image reference" in out

    def test_rate_limited(self, workspace, capsys):
        """Test a 403 from GitHub exits 1 with the rate limit message."""
        with requests_mock.Mocker() as m:
            m.get(
                "https://api.github.com/repos/TryGhost/Ghost/releases",
                status_code=403,
            )
            code = _run(["github", "--repo", "TryGhost/Ghost"])

        out = capsys.readouterr().out
        assert code == 1
        assert "rate limit exceeded" in out
