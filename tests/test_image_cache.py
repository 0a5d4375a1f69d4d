import json

from vocabforge.generation import GenerationCacheEntry, ImageCache, fingerprint_prompt, seed_from_fingerprint
from vocabforge.providers import ImageTier


class TestFingerprint:
    def test_normalisation(self):
        a = fingerprint_prompt("House,  context: A  big house")
        b = fingerprint_prompt("house, context: a big house ")
        assert a == b
        assert len(a) == 64

    def test_nfc_and_nfd_agree(self):
        assert fingerprint_prompt("samoch\u00f3d") == fingerprint_prompt("samocho\u0301d")

    def test_distinct_prompts_differ(self):
        assert fingerprint_prompt("cat") != fingerprint_prompt("car")

    def test_seed_is_deterministic_and_bounded(self):
        fp = fingerprint_prompt("cat, minimalist")
        assert seed_from_fingerprint(fp) == seed_from_fingerprint(fp)
        assert 0 <= seed_from_fingerprint(fp) < 10_000


class TestImageCache:
    def test_store_and_persist(self, tmp_path):
        path = tmp_path / "cache.json"
        cache = ImageCache(str(path))

        entry = cache.store("fp1", "https://example/img.jpg", ImageTier.ANONYMOUS, created_at=5)

        assert entry == GenerationCacheEntry("https://example/img.jpg", ImageTier.ANONYMOUS, 5)
        reloaded = ImageCache(str(path))
        assert reloaded.get("fp1") == entry
        assert json.loads(path.read_text(encoding="utf-8"))["fp1"]["tier"] == "anonymous"

    def test_any_tier_served_without_credentials(self, image_cache):
        image_cache.store("fp", "anon-ref", ImageTier.ANONYMOUS)

        entry = image_cache.lookup("fp", authenticated_configured=False)

        assert entry is not None
        assert entry.reference == "anon-ref"

    def test_anonymous_entries_are_stale_with_credentials(self, image_cache):
        image_cache.store("anon", "anon-ref", ImageTier.ANONYMOUS)
        image_cache.store("auth", "auth-ref", ImageTier.AUTHENTICATED)

        assert image_cache.lookup("anon", authenticated_configured=True) is None
        assert image_cache.lookup("auth", authenticated_configured=True).reference == "auth-ref"

    def test_missing_entry(self, image_cache):
        assert image_cache.lookup("nope", authenticated_configured=False) is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")

        assert len(ImageCache(str(path))) == 0

    def test_malformed_entries_are_skipped(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({
            "good": {"reference": "r", "tier": "authenticated", "created_at": 1},
            "bad": {"tier": "anonymous"},
        }), encoding="utf-8")

        cache = ImageCache(str(path))

        assert "good" in cache
        assert "bad" not in cache

    def test_invalidate_and_clear(self, image_cache):
        image_cache.store("a", "ra", ImageTier.ANONYMOUS)
        image_cache.store("b", "rb", ImageTier.AUTHENTICATED)

        image_cache.invalidate("a")
        assert "a" not in image_cache
        assert image_cache.get_stats()["authenticated_entries"] == 1

        image_cache.clear()
        assert len(image_cache) == 0

    def test_no_temp_files_left_behind(self, tmp_path):
        cache = ImageCache(str(tmp_path / "cache.json"))
        cache.store("a", "ra", ImageTier.ANONYMOUS)

        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]
