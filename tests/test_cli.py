"""Tests for the command-line interface.

``responses`` serves both the seed page and the link probes, so these
runs exercise the real HTML link source and requests transport.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import responses

from linkaudit.cli import EXIT_CLEAN, EXIT_DIRTY, EXIT_NO_SOURCE, build_parser, config_from_args, main
from linkaudit.config import DEFAULT_EXCLUDE_PATTERNS, DedupScope

HOME = "https://example.com/"

_HOME_HTML = """\
<html><body>
  <a href="/ok">Fine</a>
  <a href="/missing">Old page</a>
  <a href="https://external.com/x">Elsewhere</a>
  <a href="tel:+15551234">Call</a>
</body></html>
"""


def _serve_home(missing_status: int = 404) -> None:
    responses.add(responses.GET, HOME, body=_HOME_HTML, content_type="text/html")
    responses.add(responses.HEAD, "https://example.com/ok", status=200)
    responses.add(responses.HEAD, "https://example.com/missing", status=missing_status)


class TestMain:
    @responses.activate
    def test_broken_link_fails_run(self, capsys) -> None:
        _serve_home()
        exit_code = main([HOME, "--delay", "0"])
        out = capsys.readouterr().out

        assert exit_code == EXIT_DIRTY
        assert "- Page: https://example.com/\n  Link: /missing\n  Text: Old page\n  Status: 404" in out
        assert "Verdict: FAIL" in out

    @responses.activate
    def test_clean_run_passes(self, capsys) -> None:
        _serve_home(missing_status=200)
        exit_code = main([HOME, "--delay", "0"])

        assert exit_code == EXIT_CLEAN
        assert "Verdict: PASS" in capsys.readouterr().out

    @responses.activate
    def test_json_report_written(self, tmp_path: Path) -> None:
        _serve_home()
        out_file = tmp_path / "reports" / "links.json"
        main([HOME, "--delay", "0", "--out", str(out_file), "--pretty"])

        payload = json.loads(out_file.read_text(encoding="utf-8"))
        assert payload["clean"] is False
        assert [b["raw_href"] for b in payload["broken"]] == ["/missing"]
        assert payload["links_checked"] == 2

    @responses.activate
    def test_unavailable_sitemap_exits_with_source_error(self, capsys) -> None:
        responses.add(responses.GET, "https://example.com/sitemap.xml", status=500)
        exit_code = main(["--sitemap", "https://example.com/sitemap.xml"])

        assert exit_code == EXIT_NO_SOURCE
        assert "Seed source unavailable" in capsys.readouterr().err

    def test_seeds_or_sitemap_required(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 2

    def test_invalid_settings_rejected(self) -> None:
        with pytest.raises(SystemExit):
            main([HOME, "--workers", "0"])

    def test_max_seeds_without_sitemap_rejected(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([HOME, "--max-seeds", "3"])
        assert excinfo.value.code == 2

    @pytest.mark.parametrize("value", ["-1", "0"])
    def test_max_seeds_must_be_positive(self, value: str) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--sitemap", "https://example.com/sitemap.xml", "--max-seeds", value])
        assert excinfo.value.code == 2

    @responses.activate
    def test_unloadable_seed_passes_unless_opted_in(self) -> None:
        responses.add(responses.GET, HOME, status=500)

        assert main([HOME, "--delay", "0"]) == EXIT_CLEAN
        assert main([HOME, "--delay", "0", "--fail-on-page-errors"]) == EXIT_DIRTY

    @responses.activate
    def test_sitemap_source_is_closed(self, monkeypatch) -> None:
        closed = []
        monkeypatch.setattr("linkaudit.cli.SitemapSeedSource.close", lambda self: closed.append(True))
        responses.add(responses.GET, "https://example.com/sitemap.xml", status=500)

        assert main(["--sitemap", "https://example.com/sitemap.xml"]) == EXIT_NO_SOURCE
        assert closed == [True]


class TestConfigFromArgs:
    def test_defaults(self) -> None:
        config = config_from_args(build_parser().parse_args([HOME]))

        assert config.max_links_per_page == 30
        assert config.probe_timeout == 15.0
        assert config.session_timeout == 120.0
        assert config.dedup_scope is DedupScope.SESSION
        assert config.status_policy.broken_statuses == frozenset({404})
        assert config.strict is True
        assert config.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
        assert config.fail_on_page_errors is False
        assert config.user_agent == "Mozilla/5.0 (compatible; LinkAudit/1.0)"

    def test_overrides(self) -> None:
        args = build_parser().parse_args([
            HOME,
            "--no-default-excludes", "--exclude", "/admin",
            "--broken-status", "404", "--broken-status", "410",
            "--dedup-scope", "page",
            "--lenient",
            "--no-link-limit",
            "--header", "X-Env: staging",
        ])
        config = config_from_args(args)

        assert config.exclude_patterns == ("/admin",)
        assert config.status_policy.broken_statuses == frozenset({404, 410})
        assert config.dedup_scope is DedupScope.PAGE
        assert config.strict is False
        assert config.max_links_per_page is None
        assert config.headers["X-Env"] == "staging"

    def test_session_timeout_help_mentions_lingering_requests(self) -> None:
        action = next(a for a in build_parser()._actions if a.dest == "session_timeout")
        assert "keep running until --timeout expires" in action.help

    def test_malformed_header_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([HOME, "--header", "no-colon"])
