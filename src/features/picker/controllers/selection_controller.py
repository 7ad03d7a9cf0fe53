"""ロケーションピッカーの選択状態コントローラー"""

from dataclasses import replace
from typing import Any, Callable, Optional

from ....shared.exceptions.errors import PositionError
from ....shared.logging.config import get_logger
from ....shared.utils.debouncer import Debouncer
from ....shared.utils.geo import Coordinate
from ...geocoding.domain.models import ResolvedLocation
from ...geocoding.services.address_resolver import AddressResolver
from ...positioning.services.position_provider import PositionProvider
from ..domain.models import (
    DEFAULT_COORDINATE,
    ERROR_MESSAGES,
    CameraPosition,
    PickerConfig,
    SelectionState,
)
from ..surfaces.base import MapSurface

logger = get_logger(__name__)

StateCallback = Callable[[SelectionState], None]


class SelectionController:
    """
    選択状態コントローラー

    地図の移動・住所検索・端末位置の3つの入力を1つの選択状態にまとめる。
    状態は遷移ごとにスナップショットを置き換え、購読者に同期通知する

    Features:
    - カメラ移動のデバウンス付き逆ジオコーディング
    - 検索入力のデバウンス付き住所検索
    - トークンによる古い応答の破棄
    - dispose()後は一切状態を変更しない
    """

    def __init__(
        self,
        config: PickerConfig,
        position_provider: PositionProvider,
        address_resolver: AddressResolver,
    ) -> None:
        """
        Args:
            config: ピッカー設定
            position_provider: 端末位置取得サービス
            address_resolver: 住所解決サービス
        """
        self.config = config
        self.position_provider = position_provider
        self.address_resolver = address_resolver

        self._state = SelectionState()
        self._surface: Optional[MapSurface] = None
        self._subscribers: dict[int, StateCallback] = {}
        self._next_subscription = 0

        self._camera_debouncer = Debouncer(config.debounce_time, name="camera")
        self._search_debouncer = Debouncer(config.search_debounce_time, name="search")

        # 発行済みの最新トークン（これと一致しない応答は破棄）
        self._lookup_token = 0
        self._search_token = 0

        self._initial_position_set = False
        self._search_selected = False
        self._user_moved = False
        self._camera_animations = 0
        self._disposed = False

        logger.info(
            f"SelectionController initialized: debounce={config.debounce_time}s, "
            f"search_radius={config.search_radius}m"
        )

    # --- 状態 ---

    @property
    def state(self) -> SelectionState:
        """現在の状態スナップショット"""
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_map_ready(self) -> bool:
        return self._surface is not None

    @property
    def has_initial_position(self) -> bool:
        return self._initial_position_set

    def subscribe(self, callback: StateCallback) -> int:
        """
        状態変更を購読

        Args:
            callback: 遷移ごとに新しい状態で呼ばれる関数

        Returns:
            int: 購読解除用トークン
        """
        self._next_subscription += 1
        self._subscribers[self._next_subscription] = callback
        return self._next_subscription

    def unsubscribe(self, token: int) -> bool:
        """
        購読を解除

        Returns:
            bool: 解除した場合True
        """
        return self._subscribers.pop(token, None) is not None

    def initial_camera(self) -> CameraPosition:
        """ホストが地図を生成するときのカメラ位置"""
        target = self._state.selected_position or self.config.initial_position or DEFAULT_COORDINATE
        return CameraPosition(target=target, zoom=self.config.clamp_zoom(self.config.initial_zoom))

    # --- 初期化・端末位置 ---

    async def on_map_ready(self, surface: MapSurface) -> None:
        """
        地図サーフェスの準備完了時に呼ぶ

        初期位置が未設定なら端末位置を取得する（カメラ命令は出さない）
        """
        if self._disposed:
            return

        self._surface = surface
        logger.debug("Map surface ready")

        if not self._initial_position_set and not self._state.is_loading:
            await self._load_initial_position()

    async def load_current_position(self) -> None:
        """
        端末位置を読み込む（リトライ操作）

        初期位置が設定済みならgo_to_current_location()と同じ
        """
        if self._disposed or self._state.is_loading:
            return

        if self._initial_position_set:
            await self.go_to_current_location()
        else:
            await self._load_initial_position()

    async def go_to_current_location(self) -> None:
        """端末位置を再取得し、カメラを移動して住所を解決する"""
        if self._disposed:
            return

        self._update(error=None, error_message=None)

        try:
            position = await self.position_provider.acquire(force_refresh=True)
        except PositionError as e:
            if self._disposed:
                return
            logger.warning(f"Failed to go to current location: {e}")
            self._update(**self._error_changes(e))
            return

        if self._disposed:
            return

        self._camera_debouncer.cancel()
        self._lookup_token += 1
        self._initial_position_set = True
        self._update(
            device_position=position,
            selected_position=position,
            selected_location=self._location_for(position),
        )

        await self._animate_to(position)
        await self._resolve_address(position)

    async def _load_initial_position(self) -> None:
        self._update(is_loading=True, error=None, error_message=None)

        try:
            device_position: Optional[Coordinate] = None
            changes: dict[str, Any] = {}
            try:
                device_position = await self.position_provider.acquire()
                changes["device_position"] = device_position
            except PositionError as e:
                logger.warning(f"Initial position unavailable: {e}")
                changes.update(self._error_changes(e))

            if self._disposed:
                return

            self._initial_position_set = True

            # 取得中に検索結果の選択や地図の移動があった場合はその選択を優先する
            if self._search_selected or self._user_moved:
                self._update(**changes)
                return

            target = device_position or self.config.initial_position or DEFAULT_COORDINATE
            self._camera_debouncer.cancel()
            self._update(selected_position=target, selected_location=None, **changes)
            await self._resolve_address(target)
        finally:
            self._update(is_loading=False)

    # --- カメラ ---

    def on_camera_move(self, target: Coordinate) -> None:
        """
        カメラ移動中に呼ぶ

        選択座標を即座に更新し、逆ジオコーディングをデバウンスする
        """
        if self._disposed:
            return

        if self._camera_animations:
            # コントローラー自身のアニメーションによる移動
            self._update(is_viewport_moving=True)
            return

        self._user_moved = True

        # 住所が解決済みの選択座標と同じ位置なら再取得しない
        if target == self._state.selected_position and self._location_for(target) is not None:
            self._update(is_viewport_moving=True)
            return

        self._update(
            is_viewport_moving=True,
            selected_position=target,
            selected_location=self._location_for(target),
        )
        self._camera_debouncer.arm(self._resolve_address, target)

    def on_camera_idle(self) -> None:
        """カメラ停止時に呼ぶ"""
        if self._disposed:
            return
        self._update(is_viewport_moving=False)

    async def zoom_in(self) -> None:
        if self._disposed or self._surface is None:
            return
        await self._surface.zoom_in()

    async def zoom_out(self) -> None:
        if self._disposed or self._surface is None:
            return
        await self._surface.zoom_out()

    # --- 検索 ---

    def set_search_query(self, query: str) -> None:
        """
        検索入力の変更時に呼ぶ（デバウンス付き）

        空文字の場合は即座に結果をクリアする
        """
        if self._disposed:
            return

        self._search_debouncer.cancel()

        if not query.strip():
            self._search_token += 1
            self._update(search_query=query, search_results=(), is_searching=False)
            return

        self._update(search_query=query)
        self._search_debouncer.arm(self._run_search, query)

    async def search_addresses(self, query: str) -> None:
        """住所を即座に検索"""
        if self._disposed:
            return

        self._search_debouncer.cancel()
        await self._run_search(query)

    async def _run_search(self, query: str) -> None:
        self._search_token += 1
        token = self._search_token

        if not query.strip():
            self._update(search_query=query, search_results=(), is_searching=False)
            return

        self._update(search_query=query, is_searching=True)

        bias = self._state.selected_position or self._state.device_position
        try:
            results = await self.address_resolver.forward_search(
                query,
                bias=bias,
                radius=self.config.search_radius,
                language=self.config.language,
                region=self.config.region,
            )
        except Exception as e:
            logger.error(f"Error searching addresses: {e}")
            results = []

        if self._disposed or token != self._search_token:
            logger.debug(f"Discarding superseded search results for {query!r}")
            return

        self._update(search_results=tuple(results), is_searching=False)

    async def select_search_result(self, location: ResolvedLocation) -> None:
        """
        検索結果を選択

        選択した結果の住所をそのまま採用し、逆ジオコーディングは行わない
        """
        if self._disposed:
            return

        self._camera_debouncer.cancel()
        self._search_debouncer.cancel()
        self._lookup_token += 1
        self._search_token += 1
        self._search_selected = True

        self._update(
            selected_location=location,
            selected_position=location.coordinate,
            search_results=(),
            search_query="",
            is_searching=False,
        )

        await self._animate_to(location.coordinate)

    def clear_search_results(self) -> None:
        if self._disposed:
            return
        self._search_debouncer.cancel()
        self._search_token += 1
        self._update(search_results=(), search_query="", is_searching=False)

    def clear_error(self) -> None:
        if self._disposed:
            return
        self._update(error=None, error_message=None)

    # --- 破棄 ---

    def dispose(self) -> None:
        """セッションを終了（保留中のタイマーを同期的にキャンセル）"""
        if self._disposed:
            return

        self._disposed = True
        self._camera_debouncer.cancel()
        self._search_debouncer.cancel()
        self._subscribers.clear()
        self._surface = None

        logger.info("SelectionController disposed")

    # --- 内部処理 ---

    async def _resolve_address(self, target: Coordinate) -> None:
        """逆ジオコーディングし、対象が最新の選択座標のままなら反映する"""
        self._lookup_token += 1
        token = self._lookup_token

        logger.debug(f"Reverse lookup #{token} dispatched for {target}")
        location = await self.address_resolver.reverse_lookup(target)

        if self._disposed:
            return

        if token != self._lookup_token or self._state.selected_position != target:
            logger.debug(f"Discarding stale reverse lookup #{token} for {target}")
            return

        self._update(selected_location=location)

    async def _animate_to(self, target: Coordinate) -> None:
        if self._surface is None:
            logger.warning("Map surface not ready, skipping camera animation")
            return

        self._camera_animations += 1
        try:
            await self._surface.animate_camera(target, self.config.clamp_zoom(self.config.initial_zoom))
        except Exception as e:
            logger.error(f"Camera animation to {target} failed: {e}")
        finally:
            self._camera_animations -= 1

    def _location_for(self, position: Coordinate) -> Optional[ResolvedLocation]:
        """現在の住所がpositionを表している場合のみ保持する"""
        location = self._state.selected_location
        if location is not None and location.coordinate == position:
            return location
        return None

    def _error_changes(self, error: PositionError) -> dict[str, Any]:
        return {"error": error.kind, "error_message": ERROR_MESSAGES[error.kind]}

    def _update(self, **changes: Any) -> None:
        """状態を原子的に置き換えて購読者に通知"""
        if self._disposed:
            return

        self._state = replace(self._state, **changes)

        for token, callback in list(self._subscribers.items()):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"State subscriber {token} failed: {e}", exc_info=True)
