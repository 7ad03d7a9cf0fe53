"""ジオコーディングバックエンドの基底クラス"""

from abc import ABC, abstractmethod
from typing import Optional

from ....shared.utils.geo import Coordinate
from ..domain.models import PlaceDetails, PlacePrediction, Placemark


class GeocodingBackend(ABC):
    """
    ジオコーディング／プレイス検索バックエンドの抽象基底クラス

    同期API。AddressResolverがワーカースレッドで実行する
    """

    @abstractmethod
    def reverse_geocode(
        self, latitude: float, longitude: float, language: Optional[str] = None
    ) -> list[Placemark]:
        """
        座標から地点情報を取得

        Returns:
            list[Placemark]: 地点情報のリスト（見つからない場合は空）

        Raises:
            GeocodingError: リクエスト失敗時
        """
        pass

    @abstractmethod
    def autocomplete(
        self,
        text: str,
        session_token: str,
        location: Optional[Coordinate] = None,
        radius: Optional[float] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> list[PlacePrediction]:
        """
        テキストから候補を取得

        Raises:
            GeocodingApiError: バックエンドがエラーステータスを返した場合
            GeocodingError: その他の失敗時
        """
        pass

    @abstractmethod
    def place_details(
        self, place_id: str, session_token: str, language: Optional[str] = None
    ) -> Optional[PlaceDetails]:
        """
        Place IDから詳細を取得

        Returns:
            Optional[PlaceDetails]: 詳細（取得できない場合はNone）

        Raises:
            GeocodingError: リクエスト失敗時
        """
        pass
