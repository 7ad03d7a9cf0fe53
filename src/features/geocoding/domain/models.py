"""ジオコーディング機能のドメインモデル"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ....shared.utils.geo import Coordinate

# センチネル住所
ADDRESS_NOT_AVAILABLE = "Address not available"  # 住所要素がすべて空
ADDRESS_NOT_FOUND = "Address not found"  # 該当なし
ADDRESS_ERROR = "Error retrieving address"  # 取得失敗


class AddressStatus(str, Enum):
    """住所解決の結果種別"""

    RESOLVED = "resolved"  # 解決済み
    UNAVAILABLE = "unavailable"  # 住所要素なし
    NOT_FOUND = "not_found"  # 該当なし
    ERROR = "error"  # バックエンドエラー


@dataclass(frozen=True)
class ResolvedLocation:
    """
    住所解決済みの位置

    等価性は座標・住所・市区町村・国のみで判定する
    """

    coordinate: Coordinate
    address: str  # 整形済み住所
    city: Optional[str] = None  # 市区町村
    country: Optional[str] = None  # 国
    postal_code: Optional[str] = field(default=None, compare=False)  # 郵便番号
    street: Optional[str] = field(default=None, compare=False)  # 番地・通り
    sub_locality: Optional[str] = field(default=None, compare=False)  # 地区
    place_id: Optional[str] = field(default=None, compare=False)  # Google Maps Place ID
    status: AddressStatus = field(default=AddressStatus.RESOLVED, compare=False)

    def __repr__(self) -> str:
        return f"ResolvedLocation({self.coordinate!r}, address={self.address!r}, city={self.city!r})"

    @property
    def is_error(self) -> bool:
        """エラーセンチネルかどうか"""
        return self.status == AddressStatus.ERROR

    @property
    def is_sentinel(self) -> bool:
        """実住所の代わりにセンチネルを保持しているか"""
        return self.status != AddressStatus.RESOLVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.coordinate.to_dict(),
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "postal_code": self.postal_code,
            "street": self.street,
            "sub_locality": self.sub_locality,
            "place_id": self.place_id,
            "status": self.status.value,
        }


@dataclass
class AddressComponent:
    """住所コンポーネント"""

    long_name: str
    short_name: Optional[str] = None
    types: list[str] = field(default_factory=list)


@dataclass
class Placemark:
    """逆ジオコーディング結果の地点情報"""

    street: Optional[str] = None  # 番地・通り
    sub_locality: Optional[str] = None  # 地区
    locality: Optional[str] = None  # 市区町村
    postal_code: Optional[str] = None  # 郵便番号
    country: Optional[str] = None  # 国
    formatted_address: Optional[str] = None
    place_id: Optional[str] = None


@dataclass
class PlacePrediction:
    """オートコンプリート候補"""

    place_id: str
    description: str


@dataclass
class PlaceDetails:
    """プレイス詳細"""

    place_id: str
    coordinate: Coordinate
    formatted_address: Optional[str] = None
    name: Optional[str] = None
    address_components: list[AddressComponent] = field(default_factory=list)


def find_address_component(
    components: Optional[list[AddressComponent]], component_type: str
) -> Optional[str]:
    """
    指定タイプの最初のコンポーネントの名称を返す

    Args:
        components: 住所コンポーネントのリスト
        component_type: コンポーネントタイプ（例: "locality", "postal_code"）

    Returns:
        Optional[str]: コンポーネント名（見つからない場合はNone）
    """
    if not components:
        return None
    for component in components:
        if component_type in component.types:
            return component.long_name
    return None


def find_street(components: Optional[list[AddressComponent]]) -> Optional[str]:
    """
    番地と通り名から番地・通りを組み立てる

    Returns:
        Optional[str]: "{番地} {通り名}"、通り名のみ、またはNone
    """
    street_number = find_address_component(components, "street_number")
    route = find_address_component(components, "route")

    if route and street_number:
        return f"{street_number} {route}"
    if route:
        return route
    return None


def parse_address_components(raw_components: Optional[list[dict[str, Any]]]) -> list[AddressComponent]:
    """Google Maps APIのaddress_components配列を変換"""
    if not raw_components:
        return []
    return [
        AddressComponent(
            long_name=raw.get("long_name", ""),
            short_name=raw.get("short_name"),
            types=list(raw.get("types", [])),
        )
        for raw in raw_components
    ]
