"""住所解決サービス（逆ジオコーディング・住所検索）"""

import asyncio
import uuid
from typing import Optional

from ....shared.exceptions.errors import GeocodingApiError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import Coordinate
from ..domain.models import (
    ADDRESS_ERROR,
    ADDRESS_NOT_AVAILABLE,
    ADDRESS_NOT_FOUND,
    AddressStatus,
    PlaceDetails,
    PlacePrediction,
    Placemark,
    ResolvedLocation,
    find_address_component,
    find_street,
)
from ..providers.address_cache import AddressCache
from ..providers.base import GeocodingBackend

logger = get_logger(__name__)

DEFAULT_REVERSE_TIMEOUT = 10.0
DEFAULT_SEARCH_TIMEOUT = 10.0


class AddressResolver:
    """
    住所解決サービス

    reverse_lookup()とforward_search()は例外を送出しない。
    失敗はセンチネル住所または空の結果として返す
    """

    def __init__(
        self,
        backend: GeocodingBackend,
        cache: Optional[AddressCache] = None,
        reverse_timeout: float = DEFAULT_REVERSE_TIMEOUT,
        search_timeout: float = DEFAULT_SEARCH_TIMEOUT,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> None:
        """
        Args:
            backend: ジオコーディングバックエンド
            cache: 住所キャッシュ（Noneの場合は新規作成）
            reverse_timeout: 逆ジオコーディングのデフォルトタイムアウト（秒）
            search_timeout: 住所検索のデフォルトタイムアウト（秒）
            language: デフォルトの言語ヒント
            region: デフォルトの国コードヒント
        """
        self.backend = backend
        self.cache = cache if cache is not None else AddressCache()
        self.reverse_timeout = reverse_timeout
        self.search_timeout = search_timeout
        self.language = language
        self.region = region

        logger.info(
            f"AddressResolver initialized: reverse_timeout={reverse_timeout}s, "
            f"search_timeout={search_timeout}s, language={language}, region={region}"
        )

    async def reverse_lookup(
        self, coordinate: Coordinate, timeout: Optional[float] = None
    ) -> ResolvedLocation:
        """
        座標から住所を取得（キャッシュあり）

        Args:
            coordinate: 座標
            timeout: タイムアウト（秒、Noneの場合はデフォルト）

        Returns:
            ResolvedLocation: 住所解決結果（失敗時はエラーセンチネル）
        """
        cached = self.cache.get(coordinate)
        if cached is not None:
            return cached

        effective_timeout = timeout if timeout is not None else self.reverse_timeout

        try:
            placemarks = await asyncio.wait_for(
                asyncio.to_thread(
                    self.backend.reverse_geocode,
                    coordinate.latitude,
                    coordinate.longitude,
                    self.language,
                ),
                timeout=effective_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Reverse geocoding timed out after {effective_timeout}s: {coordinate}"
            )
            return ResolvedLocation(
                coordinate=coordinate, address=ADDRESS_ERROR, status=AddressStatus.ERROR
            )
        except Exception as e:
            logger.error(f"Error getting address from coordinates {coordinate}: {e}")
            return ResolvedLocation(
                coordinate=coordinate, address=ADDRESS_ERROR, status=AddressStatus.ERROR
            )

        if placemarks:
            location = build_location_from_placemark(coordinate, placemarks[0])
        else:
            logger.debug(f"No placemark for coordinates: {coordinate}")
            location = ResolvedLocation(
                coordinate=coordinate, address=ADDRESS_NOT_FOUND, status=AddressStatus.NOT_FOUND
            )

        self.cache.put(coordinate, location)
        return location

    async def forward_search(
        self,
        query: str,
        bias: Optional[Coordinate] = None,
        radius: Optional[float] = None,
        timeout: Optional[float] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> list[ResolvedLocation]:
        """
        テキストから住所候補を検索

        Args:
            query: 検索文字列
            bias: 結果を寄せる座標
            radius: バイアス半径（メートル）
            timeout: 検索全体のタイムアウト（秒、Noneの場合はデフォルト）
            language: 言語（Noneの場合はデフォルト）
            region: 国コード（Noneの場合はデフォルト）

        Returns:
            list[ResolvedLocation]: 候補（失敗時は空リスト）
        """
        if not query or not query.strip():
            return []

        effective_timeout = timeout if timeout is not None else self.search_timeout

        try:
            return await asyncio.wait_for(
                self._search(
                    query.strip(),
                    bias,
                    radius,
                    language or self.language,
                    region or self.region,
                ),
                timeout=effective_timeout,
            )
        except GeocodingApiError as e:
            logger.warning(f"Places API error ({e.status}) for query {query!r}: {e}")
            return []
        except asyncio.TimeoutError:
            logger.warning(f"Address search timed out after {effective_timeout}s: {query!r}")
            return []
        except Exception as e:
            logger.error(f"Error searching addresses for {query!r}: {e}", exc_info=True)
            return []

    async def _search(
        self,
        query: str,
        bias: Optional[Coordinate],
        radius: Optional[float],
        language: Optional[str],
        region: Optional[str],
    ) -> list[ResolvedLocation]:
        # 課金単位となるセッショントークンは呼び出しごとに新規発行
        session_token = str(uuid.uuid4())

        logger.debug(f"Searching addresses: {query!r} (session={session_token})")

        predictions = await asyncio.to_thread(
            self.backend.autocomplete,
            query,
            session_token,
            bias,
            radius,
            language,
            region,
        )

        results: list[ResolvedLocation] = []
        for prediction in predictions:
            details = await asyncio.to_thread(
                self.backend.place_details,
                prediction.place_id,
                session_token,
                language,
            )
            if details is None:
                continue
            results.append(build_location_from_details(prediction, details))

        logger.debug(f"Address search {query!r}: {len(results)} results")
        return results

    def clear_cache(self) -> None:
        """キャッシュをクリア"""
        self.cache.clear()

    def get_cache_stats(self) -> dict[str, float]:
        """キャッシュ統計を取得"""
        return self.cache.get_stats()


def build_address(placemark: Placemark) -> str:
    """
    地点情報から住所文字列を組み立てる

    通り、地区（市区町村と異なる場合のみ）、市区町村、国の順に", "で連結する
    """
    parts = []
    if placemark.street:
        parts.append(placemark.street)
    if placemark.sub_locality and placemark.sub_locality != placemark.locality:
        parts.append(placemark.sub_locality)
    if placemark.locality:
        parts.append(placemark.locality)
    if placemark.country:
        parts.append(placemark.country)

    return ", ".join(parts) if parts else ADDRESS_NOT_AVAILABLE


def build_location_from_placemark(coordinate: Coordinate, placemark: Placemark) -> ResolvedLocation:
    """逆ジオコーディング結果からResolvedLocationを作成"""
    address = build_address(placemark)

    return ResolvedLocation(
        coordinate=coordinate,
        address=address,
        city=placemark.locality,
        country=placemark.country,
        postal_code=placemark.postal_code,
        street=placemark.street,
        sub_locality=placemark.sub_locality,
        place_id=placemark.place_id,
        status=(
            AddressStatus.UNAVAILABLE
            if address == ADDRESS_NOT_AVAILABLE
            else AddressStatus.RESOLVED
        ),
    )


def build_location_from_details(
    prediction: PlacePrediction, details: PlaceDetails
) -> ResolvedLocation:
    """プレイス詳細からResolvedLocationを作成"""
    components = details.address_components

    return ResolvedLocation(
        coordinate=details.coordinate,
        address=details.formatted_address or prediction.description or "",
        city=find_address_component(components, "locality"),
        country=find_address_component(components, "country"),
        postal_code=find_address_component(components, "postal_code"),
        street=find_street(components),
        sub_locality=find_address_component(components, "sublocality"),
        place_id=details.place_id,
    )
