"""端末位置取得機能のドメインモデル"""
from enum import Enum


class LocationAccuracy(str, Enum):
    """要求する位置精度"""

    LOWEST = "lowest"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    BEST = "best"


class PermissionStatus(str, Enum):
    """位置情報の権限状態"""

    GRANTED = "granted"  # 許可
    DENIED = "denied"  # 拒否（再要求可能）
    PERMANENTLY_DENIED = "permanently_denied"  # 恒久的拒否（システム設定が必要）
    RESTRICTED = "restricted"  # OSによる制限
