"""Tests for the site diagnostic checklist."""

import pytest

from indexwatch.modules.deindex_recovery.diagnostics import (
    CHECK_NAMES,
    SiteDiagnostics,
    summarise,
)


@pytest.mark.asyncio
class TestSiteDiagnostics:

    async def test_healthy_site(self, site_transport):
        result = await SiteDiagnostics(transport=site_transport()).run("example.com/")
        diags = result["diagnostics"]

        assert result["site_url"] == "https://example.com"
        assert set(diags) == set(CHECK_NAMES)
        for name in ("robots_txt", "sitemap", "noindex", "server_errors"):
            assert diags[name] == {"status": "ok", "issues": []}
        assert diags["canonical"]["status"] == "checking"
        assert diags["crawl_errors"]["status"] == "checking"
        assert result["summary"] == {
            "critical": 0, "errors": 0, "warnings": 0, "overall_health": "healthy",
        }
        assert "timestamp" in result

    async def test_robots_disallow_all(self, site_transport):
        transport = site_transport(robots="User-agent: *\nDisallow: /\n")
        result = await SiteDiagnostics(transport=transport).run("https://example.com")
        robots = result["diagnostics"]["robots_txt"]
        assert robots["status"] == "warning"
        assert robots["issues"] == ["Site may be blocked from crawling"]
        assert result["summary"]["warnings"] == 1
        assert result["summary"]["overall_health"] == "healthy"

    async def test_missing_sitemap(self, site_transport):
        result = await SiteDiagnostics(transport=site_transport(sitemap_status=404)).run(
            "https://example.com"
        )
        sitemap = result["diagnostics"]["sitemap"]
        assert sitemap["status"] == "error"
        assert sitemap["issues"] == ["Sitemap not accessible"]
        assert result["summary"]["overall_health"] == "unhealthy"

    async def test_noindex_homepage_is_critical(self, site_transport):
        html = '<html><head><meta name="robots" content="noindex, nofollow"></head></html>'
        result = await SiteDiagnostics(transport=site_transport(homepage=html)).run(
            "https://example.com"
        )
        noindex = result["diagnostics"]["noindex"]
        assert noindex["status"] == "critical"
        assert noindex["issues"] == ["Homepage has noindex meta tag"]
        assert result["summary"]["overall_health"] == "critical"

    async def test_server_error_is_critical(self, site_transport):
        result = await SiteDiagnostics(transport=site_transport(head_status=503)).run(
            "https://example.com"
        )
        server = result["diagnostics"]["server_errors"]
        assert server["status"] == "critical"
        assert server["issues"] == ["Server returning 503"]

    async def test_failed_check_does_not_stop_the_others(self, site_transport):
        transport = site_transport(fail_paths=("/robots.txt",))
        result = await SiteDiagnostics(transport=transport).run("https://example.com")
        diags = result["diagnostics"]
        assert diags["robots_txt"]["status"] == "error"
        assert diags["robots_txt"]["issues"] == ["Could not fetch robots.txt"]
        assert diags["sitemap"]["status"] == "ok"
        assert diags["noindex"]["status"] == "ok"
        assert diags["server_errors"]["status"] == "ok"

    async def test_unreachable_server(self, site_transport):
        transport = site_transport(fail_paths=("/",))
        result = await SiteDiagnostics(transport=transport).run("https://example.com")
        diags = result["diagnostics"]
        assert diags["noindex"]["status"] == "error"
        assert diags["noindex"]["issues"] == ["Could not check homepage"]
        assert diags["server_errors"]["status"] == "critical"
        assert diags["server_errors"]["issues"] == ["Could not reach server"]


class TestSummarise:

    def test_counts_statuses(self):
        summary = summarise({
            "a": {"status": "critical"},
            "b": {"status": "error"},
            "c": {"status": "error"},
            "d": {"status": "warning"},
            "e": {"status": "checking"},
        })
        assert summary == {
            "critical": 1, "errors": 2, "warnings": 1, "overall_health": "critical",
        }

    def test_errors_without_critical_are_unhealthy(self):
        assert summarise({"a": {"status": "error"}})["overall_health"] == "unhealthy"
