"""逆ジオコーディング結果のキャッシュ"""

from typing import Optional

from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate
from ..domain.models import ResolvedLocation

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 100


class AddressCache:
    """
    座標キーの住所キャッシュ

    キーは座標を小数点以下6桁で丸めた文字列。
    容量到達時は最も古く挿入されたエントリを削除する（FIFO。ヒットしても順序は変わらない）
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        """
        Args:
            max_size: 最大エントリ数
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.max_size = max_size
        self.cache: dict[str, ResolvedLocation] = {}
        self.hit_count = 0
        self.miss_count = 0

        logger.info(f"AddressCache initialized: max_size={max_size}")

    def __len__(self) -> int:
        return len(self.cache)

    def __contains__(self, coordinate: Coordinate) -> bool:
        return coordinate.cache_key() in self.cache

    def get(self, coordinate: Coordinate) -> Optional[ResolvedLocation]:
        """
        キャッシュから取得

        Args:
            coordinate: 座標

        Returns:
            Optional[ResolvedLocation]: キャッシュ済みの結果（ない場合はNone）
        """
        cache_key = coordinate.cache_key()
        location = self.cache.get(cache_key)

        if location is not None:
            self.hit_count += 1
            logger.debug(f"Cache hit for coordinates: {cache_key}")
        else:
            self.miss_count += 1
            logger.debug(f"Cache miss for coordinates: {cache_key}")

        return location

    def put(self, coordinate: Coordinate, location: ResolvedLocation) -> None:
        """
        キャッシュに追加

        Args:
            coordinate: 座標
            location: 住所解決結果
        """
        cache_key = coordinate.cache_key()

        if cache_key not in self.cache and len(self.cache) >= self.max_size:
            oldest_key = next(iter(self.cache))
            del self.cache[oldest_key]
            logger.debug(f"Cache evicted oldest entry: {oldest_key}")

        self.cache[cache_key] = location

    def clear(self) -> None:
        """キャッシュをクリア"""
        cache_size = len(self.cache)
        self.cache.clear()
        self.hit_count = 0
        self.miss_count = 0
        logger.info(f"Cache cleared: {cache_size} entries removed")

    def get_stats(self) -> dict[str, float]:
        """
        キャッシュ統計を取得

        Returns:
            dict[str, float]: キャッシュ統計（サイズ、ヒット数、ミス数、ヒット率）
        """
        total_requests = self.hit_count + self.miss_count
        hit_rate = (self.hit_count / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "cache_size": len(self.cache),
            "max_size": self.max_size,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "total_requests": total_requests,
            "hit_rate_percent": round(hit_rate, 2),
        }
