"""Tests for photogallery.core.hashing."""

from __future__ import annotations

from photogallery.core.hashing import fingerprint


class TestFingerprint:
    def test_string_is_deterministic(self):
        assert fingerprint("settings text") == fingerprint("settings text")

    def test_sequence_is_deterministic(self):
        parts = ["settings:{}", "index_html:<html>", "image_paths:a.jpg;b.jpg"]
        assert fingerprint(parts) == fingerprint(list(parts))

    def test_different_strings_differ(self):
        assert fingerprint("a.jpg") != fingerprint("b.jpg")

    def test_sequence_order_matters(self):
        assert fingerprint(["a", "b"]) != fingerprint(["b", "a"])

    def test_element_boundaries_matter(self):
        """Joining parts differently must not produce the same fingerprint."""
        assert fingerprint(["ab", "c"]) != fingerprint(["a", "bc"])

    def test_is_sha512_hex(self):
        digest = fingerprint("x")
        assert len(digest) == 128
        int(digest, 16)
