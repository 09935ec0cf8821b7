"""Tests for the side read cache."""

from decimal import Decimal
from types import SimpleNamespace

from services.read_cache import ReadCache, read_cache
from services.unit_ledger_service import UnitLedgerService


class TestReadCache:
    def test_get_or_set_loads_once(self):
        cache = ReadCache(ttl_seconds=30)
        calls = []

        def loader():
            calls.append(1)
            return ["a"]

        assert cache.get_or_set("units:list", loader) == ["a"]
        assert cache.get_or_set("units:list", loader) == ["a"]
        assert len(calls) == 1

    def test_invalidate_by_prefix(self):
        cache = ReadCache(ttl_seconds=30)
        cache.set("units:list:a", 1)
        cache.set("units:list:b", 2)
        cache.set("stock_elements:list", 3)

        assert cache.invalidate("units:") == 2
        assert cache.get("units:list:a") is None
        assert cache.get("stock_elements:list") == 3

    def test_zero_ttl_disables_storage(self):
        cache = ReadCache(ttl_seconds=0)
        cache.set("units:list", [1])
        assert cache.get("units:list") is None

    def test_expired_entries_dropped(self, monkeypatch):
        cache = ReadCache(ttl_seconds=10)
        now = [1000.0]
        monkeypatch.setattr(
            "services.read_cache.time", SimpleNamespace(monotonic=lambda: now[0])
        )
        cache.set("units:list", [1])

        now[0] += 11

        assert cache.get("units:list") is None

    def test_ttl_defaults_to_settings(self, monkeypatch):
        monkeypatch.setattr("services.read_cache.settings.READ_CACHE_TTL_SECONDS", 7)
        assert ReadCache().ttl == 7

    def test_clear(self):
        cache = ReadCache(ttl_seconds=30)
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None

    def test_load_spanning_invalidation_is_not_stored(self):
        cache = ReadCache(ttl_seconds=30)

        def loader():
            value = ["before write"]
            cache.invalidate("units:")
            return value

        assert cache.get_or_set("units:list:all", loader) == ["before write"]
        assert cache.get("units:list:all") is None

    def test_unrelated_invalidation_does_not_block_store(self):
        cache = ReadCache(ttl_seconds=30)

        def loader():
            cache.invalidate("stock_elements:")
            return ["units"]

        cache.get_or_set("units:list:all", loader)

        assert cache.get("units:list:all") == ["units"]

    def test_next_load_after_invalidation_is_stored(self):
        cache = ReadCache(ttl_seconds=30)
        cache.invalidate("units:")

        cache.get_or_set("units:list:all", lambda: ["fresh"])

        assert cache.get("units:list:all") == ["fresh"]


class TestReadCacheWithLedgerWrites:
    def test_cut_committed_during_list_load_is_not_hidden(self, db, unit, admin_principal):
        def load_weights():
            weights = [u.current_weight for u in UnitLedgerService.list_units(db)]
            UnitLedgerService.add_partition(db, unit.id, Decimal("100"), actor=admin_principal)
            return weights

        stale = read_cache.get_or_set("units:list:all", load_weights)

        assert stale == [Decimal("1000")]
        assert read_cache.get("units:list:all") is None
        fresh = read_cache.get_or_set(
            "units:list:all",
            lambda: [u.current_weight for u in UnitLedgerService.list_units(db)],
        )
        assert fresh == [Decimal("900")]
