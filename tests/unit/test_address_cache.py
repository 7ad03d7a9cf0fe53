"""住所キャッシュのテスト"""

import pytest

from src.features.geocoding.domain.models import ResolvedLocation
from src.features.geocoding.providers.address_cache import AddressCache
from src.shared.utils.geo import Coordinate


def _location(latitude: float, longitude: float = 0.0) -> ResolvedLocation:
    coordinate = Coordinate(latitude=latitude, longitude=longitude)
    return ResolvedLocation(coordinate=coordinate, address=f"Address {latitude}")


def test_put_and_get() -> None:
    cache = AddressCache()
    location = _location(1.0)

    cache.put(location.coordinate, location)

    assert cache.get(location.coordinate) is location
    assert location.coordinate in cache


def test_lookup_uses_rounded_key() -> None:
    """6桁に丸めて同じ座標ならヒット"""
    cache = AddressCache()
    location = _location(48.8566001, 2.3522001)
    cache.put(location.coordinate, location)

    assert cache.get(Coordinate(latitude=48.8566004, longitude=2.3522004)) is location


def test_evicts_oldest_at_capacity() -> None:
    """101件目の挿入で最初のキーが削除される"""
    cache = AddressCache(max_size=100)
    locations = [_location(float(i)) for i in range(101)]

    for location in locations:
        cache.put(location.coordinate, location)

    assert len(cache) == 100
    assert locations[0].coordinate not in cache
    assert locations[1].coordinate in cache
    assert locations[100].coordinate in cache


def test_hit_does_not_refresh_order() -> None:
    """ヒットしても挿入順は変わらない（FIFO）"""
    cache = AddressCache(max_size=2)
    first, second, third = _location(1.0), _location(2.0), _location(3.0)

    cache.put(first.coordinate, first)
    cache.put(second.coordinate, second)
    cache.get(first.coordinate)
    cache.put(third.coordinate, third)

    assert first.coordinate not in cache
    assert second.coordinate in cache


def test_overwriting_existing_key_does_not_evict() -> None:
    cache = AddressCache(max_size=2)
    first, second = _location(1.0), _location(2.0)
    cache.put(first.coordinate, first)
    cache.put(second.coordinate, second)

    replacement = ResolvedLocation(coordinate=first.coordinate, address="Replaced")
    cache.put(first.coordinate, replacement)

    assert len(cache) == 2
    assert cache.get(first.coordinate).address == "Replaced"
    assert second.coordinate in cache


def test_stats_and_clear() -> None:
    cache = AddressCache(max_size=10)
    location = _location(1.0)
    cache.put(location.coordinate, location)

    cache.get(location.coordinate)
    cache.get(Coordinate(latitude=9.0, longitude=9.0))

    stats = cache.get_stats()
    assert stats["cache_size"] == 1
    assert stats["max_size"] == 10
    assert stats["hit_count"] == 1
    assert stats["miss_count"] == 1
    assert stats["total_requests"] == 2
    assert stats["hit_rate_percent"] == 50.0

    cache.clear()
    assert len(cache) == 0
    assert cache.get_stats()["total_requests"] == 0


def test_invalid_max_size() -> None:
    with pytest.raises(ValueError):
        AddressCache(max_size=0)
