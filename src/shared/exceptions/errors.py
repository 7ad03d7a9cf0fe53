"""カスタム例外定義"""
from enum import Enum


class LocationErrorKind(str, Enum):
    """位置情報取得エラーの種別"""

    SERVICE_DISABLED = "service_disabled"  # 位置情報サービスが無効
    PERMISSION_DENIED = "permission_denied"  # 権限拒否（再要求可能）
    PERMISSION_PERMANENTLY_DENIED = "permission_permanently_denied"  # 権限の恒久的拒否
    TIMEOUT = "timeout"  # タイムアウト
    UNKNOWN = "unknown"  # その他


class LocationPickerError(Exception):
    """ロケーションピッカー基底例外"""

    pass


class PositionError(LocationPickerError):
    """端末位置の取得エラー"""

    kind: LocationErrorKind = LocationErrorKind.UNKNOWN


class LocationServiceDisabledError(PositionError):
    """端末の位置情報サービスが無効"""

    kind = LocationErrorKind.SERVICE_DISABLED


class LocationPermissionDeniedError(PositionError):
    """位置情報の権限が拒否された（再要求可能）"""

    kind = LocationErrorKind.PERMISSION_DENIED


class LocationPermissionPermanentlyDeniedError(PositionError):
    """
    位置情報の権限が恒久的に拒否された

    ユーザーがシステム設定から許可する必要がある
    """

    kind = LocationErrorKind.PERMISSION_PERMANENTLY_DENIED


class LocationTimeoutError(PositionError):
    """時間内に位置を取得できなかった"""

    kind = LocationErrorKind.TIMEOUT


class LocationUnknownError(PositionError):
    """位置取得中の不明なエラー"""

    kind = LocationErrorKind.UNKNOWN


class GeocodingError(LocationPickerError):
    """ジオコーディングエラー"""

    pass


class GeocodingApiError(GeocodingError):
    """バックエンドがエラーステータスを返した"""

    def __init__(self, message: str, status: str = "UNKNOWN_ERROR") -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(LocationPickerError):
    """設定エラー"""

    pass
