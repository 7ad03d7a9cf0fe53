"""座標ユーティリティのテスト"""

import pytest

from src.shared.utils.geo import Coordinate, distance_between


def test_cache_key_rounds_to_six_decimals() -> None:
    """キャッシュキーは小数点以下6桁"""
    coordinate = Coordinate(latitude=40.75801234, longitude=-73.98551234)
    assert coordinate.cache_key() == "40.758012,-73.985512"


def test_cache_key_identical_for_nearby_points() -> None:
    """7桁目以降だけが異なる座標は同じキー"""
    a = Coordinate(latitude=48.8566001, longitude=2.3522001)
    b = Coordinate(latitude=48.8566004, longitude=2.3522004)
    assert a.cache_key() == b.cache_key()


def test_coordinate_equality_and_hash() -> None:
    a = Coordinate(latitude=1.5, longitude=2.5)
    b = Coordinate(latitude=1.5, longitude=2.5)
    assert a == b
    assert len({a, b}) == 1


def test_to_dict_and_tuple() -> None:
    coordinate = Coordinate(latitude=1.0, longitude=2.0)
    assert coordinate.to_tuple() == (1.0, 2.0)
    assert coordinate.to_dict() == {"latitude": 1.0, "longitude": 2.0}


def test_distance_same_point_is_zero() -> None:
    point = Coordinate(latitude=35.6812, longitude=139.7671)
    assert distance_between(point, point) == 0.0


def test_distance_paris_to_london() -> None:
    """パリ〜ロンドン間は約344km"""
    paris = Coordinate(latitude=48.8566, longitude=2.3522)
    london = Coordinate(latitude=51.5074, longitude=-0.1278)
    assert distance_between(paris, london) == pytest.approx(343_900, rel=0.01)


def test_distance_is_symmetric() -> None:
    a = Coordinate(latitude=40.7580, longitude=-73.9855)
    b = Coordinate(latitude=40.7484, longitude=-73.9857)
    assert distance_between(a, b) == pytest.approx(distance_between(b, a))


def test_cache_key_normalises_negative_zero() -> None:
    """丸めて0になる負の値は0.0と同じキー"""
    a = Coordinate(latitude=-0.0000001, longitude=-0.0000004)
    b = Coordinate(latitude=0.0, longitude=0.0)
    assert a.cache_key() == b.cache_key() == "0.000000,0.000000"
