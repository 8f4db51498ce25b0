"""Integration tests for photogallery.api.main - HTTP routes.

All tests use the FastAPI TestClient against a temporary gallery with
jpegoptim replaced by a fake compressor. Tests cover every route:

- ``GET /`` - rendered gallery page.
- ``GET /image/{path}`` - originals and compressed variants.
- ``GET /sitemap.xml`` and ``GET /robots.txt``.
- ``GET /css/{path}`` - stylesheets.
- Unknown routes and error mapping.
"""

from __future__ import annotations

from conftest import LoopRecorder, create_test_image, write_settings

# ---------------------------------------------------------------------------
# Gallery page.
# ---------------------------------------------------------------------------


class TestIndexPage:
    def test_index_returns_html(self, test_client):
        resp = test_client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]
        assert "<title>example.com</title>" in resp.text

    def test_index_lists_sections_in_order(self, test_client):
        html = test_client.get("/").text
        assert (
            html.index('id="featured-section"')
            < html.index('id="travel-section"')
            < html.index('id="global-section"')
        )

    def test_index_links_thumbnails(self, test_client):
        html = test_client.get("/").text
        assert 'src="image/c.jpg?sz=100k"' in html
        assert "notes.txt" not in html

    def test_index_picks_up_new_images(self, test_client, gallery_dir):
        test_client.get("/")
        create_test_image(gallery_dir / "d.jpg")
        test_client.app.state.gallery.webpage_monitor.rerender_interval = 0

        assert 'href="image/d.jpg"' in test_client.get("/").text

    def test_broken_settings_return_generic_500(self, test_config, fake_compressor):
        from fastapi.testclient import TestClient

        from photogallery.api.main import create_app

        test_config.settings_file.write_text("{ not json")
        with TestClient(create_app(test_config)) as client:
            resp = client.get("/")

        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}
        assert str(test_config.settings_file) not in resp.text


# ---------------------------------------------------------------------------
# Images.
# ---------------------------------------------------------------------------


class TestImages:
    def test_original_without_size(self, test_client, gallery_dir, fake_compressor):
        resp = test_client.get("/image/a.jpg")

        assert resp.status_code == 200
        assert resp.content == (gallery_dir / "a.jpg").read_bytes()
        assert fake_compressor.calls == []

    def test_sized_image_is_compressed_and_cached(
        self, test_client, test_config, fake_compressor
    ):
        first = test_client.get("/image/a.jpg", params={"sz": "100k"})
        second = test_client.get("/image/a.jpg", params={"sz": "100k"})

        assert first.status_code == 200
        assert first.content == b"compressed"
        assert second.content == b"compressed"
        assert len(fake_compressor.calls) == 1
        assert (test_config.cache_dir / "_100k_a.jpg").is_file()

    def test_nested_image(self, test_client, gallery_dir, test_config):
        create_test_image(gallery_dir / "2023" / "iceland" / "falls.jpg")

        resp = test_client.get("/image/2023/iceland/falls.jpg", params={"sz": "500k"})
        assert resp.status_code == 200
        assert (test_config.cache_dir / "2023_iceland_500k_falls.jpg").is_file()

    def test_unsupported_size_serves_original(self, test_client, gallery_dir, fake_compressor):
        resp = test_client.get("/image/a.jpg", params={"sz": "999k"})

        assert resp.status_code == 200
        assert resp.content == (gallery_dir / "a.jpg").read_bytes()
        assert fake_compressor.calls == []

    def test_compression_failure_serves_original(
        self, test_client, gallery_dir, fake_compressor, test_config
    ):
        fake_compressor.fail = True

        resp = test_client.get("/image/a.jpg", params={"sz": "100k"})

        assert resp.status_code == 200
        assert resp.content == (gallery_dir / "a.jpg").read_bytes()
        assert not (test_config.cache_dir / "_100k_a.jpg").exists()

    def test_missing_image_is_404(self, test_client):
        assert test_client.get("/image/missing.jpg").status_code == 404

    def test_missing_sized_image_is_404(self, test_client, fake_compressor):
        assert test_client.get("/image/missing.jpg", params={"sz": "100k"}).status_code == 404
        assert fake_compressor.calls == []

    def test_traversal_is_404(self, test_client):
        resp = test_client.get("/image/..%2Fgallery-settings.json")
        assert resp.status_code == 404

    def test_file_checks_run_off_the_event_loop(self, test_client):
        ctx = test_client.app.state.gallery
        ctx.get_settings = LoopRecorder(ctx.get_settings)
        ctx.image_cache.resolve_original = LoopRecorder(ctx.image_cache.resolve_original)

        assert test_client.get("/image/a.jpg").status_code == 200
        assert test_client.get("/robots.txt").status_code == 200

        assert ctx.get_settings.on_loop == [False, False]
        assert ctx.image_cache.resolve_original.on_loop == [False]


# ---------------------------------------------------------------------------
# Sitemap and robots.txt.
# ---------------------------------------------------------------------------


class TestSitemap:
    def test_sitemap_lists_images(self, test_client):
        resp = test_client.get("/sitemap.xml")

        assert resp.status_code == 200
        assert "application/xml" in resp.headers["content-type"]
        assert "<loc>https://example.com/image/a.jpg</loc>" in resp.text
        assert "notes.txt" not in resp.text

    def test_sitemap_follows_site_rename(self, test_client, settings_file, settings_data):
        test_client.get("/sitemap.xml")
        settings_data["site-name"] = "photos.example.org"
        write_settings(settings_file, settings_data)

        assert "https://photos.example.org/image/a.jpg" in test_client.get("/sitemap.xml").text

    def test_robots_txt(self, test_client):
        resp = test_client.get("/robots.txt")

        assert resp.status_code == 200
        assert "Sitemap: https://example.com/sitemap.xml" in resp.text


# ---------------------------------------------------------------------------
# Static files and unknown routes.
# ---------------------------------------------------------------------------


class TestStaticAndFallback:
    def test_stylesheet(self, test_client):
        resp = test_client.get("/css/index.css")

        assert resp.status_code == 200
        assert "text/css" in resp.headers["content-type"]

    def test_missing_stylesheet_is_404(self, test_client):
        assert test_client.get("/css/missing.css").status_code == 404

    def test_non_css_file_is_404(self, test_client):
        assert test_client.get("/css/..%2F404.html").status_code == 404

    def test_unknown_route_serves_404_page(self, test_client):
        resp = test_client.get("/no/such/page")

        assert resp.status_code == 404
        assert "text/html" in resp.headers["content-type"]
        assert "Back to the gallery" in resp.text
