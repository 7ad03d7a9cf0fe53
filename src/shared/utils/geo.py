"""座標関連ユーティリティ"""

import math
from dataclasses import dataclass

# WGS84の平均地球半径（メートル）
EARTH_RADIUS_METERS = 6371008.8

# キャッシュキーの小数点以下桁数（約0.11m精度）
CACHE_KEY_PRECISION = 6


@dataclass(frozen=True)
class Coordinate:
    """地理座標（度）"""

    latitude: float  # 緯度
    longitude: float  # 経度

    def __repr__(self) -> str:
        return f"Coordinate(lat={self.latitude}, lng={self.longitude})"

    def to_tuple(self) -> tuple[float, float]:
        """(緯度, 経度)のタプルとして返す"""
        return (self.latitude, self.longitude)

    def cache_key(self) -> str:
        """小数点以下6桁で丸めたキャッシュキー"""
        # 丸めると-0.0になる値は0.0と同じキーにする（+ 0.0で符号を落とす）
        latitude = round(self.latitude, CACHE_KEY_PRECISION) + 0.0
        longitude = round(self.longitude, CACHE_KEY_PRECISION) + 0.0
        return f"{latitude:.{CACHE_KEY_PRECISION}f},{longitude:.{CACHE_KEY_PRECISION}f}"

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


def distance_between(a: Coordinate, b: Coordinate) -> float:
    """
    2点間の距離をハバーサイン公式で計算

    Args:
        a: 始点
        b: 終点

    Returns:
        float: 距離（メートル）
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))
