"""Cloud Run用HTTPサーバー（FastAPI）"""
import asyncio
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .features.geocoding.services.address_resolver import AddressResolver
from .features.picker.controllers.selection_controller import SelectionController
from .features.picker.session_factory import PickerSessionFactory
from .features.picker.surfaces.queue_surface import QueueMapSurface
from .infrastructure.config.settings import Settings
from .shared.exceptions.errors import ConfigurationError
from .shared.logging.config import bind_session, get_logger, setup_logging
from .shared.utils.geo import Coordinate

# 設定を読み込み
settings = Settings()

# ロギングを設定
setup_logging(
    level=settings.log_level,
    enable_cloud_logging=settings.gcp_logging_enabled,
    project_id=settings.gcp_project_id,
)
logger = get_logger(__name__)

app = FastAPI(
    title="ロケーションピッカーサービス",
    description="地図移動・住所検索・現在位置の入力を1つの選択状態にまとめる住所解決サービス",
    version="1.0.0",
)

_session_factory: Optional[PickerSessionFactory] = None
_address_resolver: Optional[AddressResolver] = None


def get_session_factory() -> PickerSessionFactory:
    """セッションファクトリーを取得（初回呼び出し時に作成）"""
    global _session_factory
    if _session_factory is None:
        _session_factory = PickerSessionFactory(settings)
    return _session_factory


def get_address_resolver(
    factory: PickerSessionFactory = Depends(get_session_factory),
) -> AddressResolver:
    """HTTPエンドポイント共有の住所解決サービスを取得"""
    global _address_resolver
    if _address_resolver is None:
        _address_resolver = factory.create_address_resolver()
    return _address_resolver


@app.on_event("startup")
async def startup_event() -> None:
    """起動時の処理"""
    logger.info("Application starting up")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Project: {settings.project_name}")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """シャットダウン時の処理"""
    logger.info("Application shutting down")


@app.get("/")
async def root() -> dict[str, Any]:
    """ルートエンドポイント"""
    return {
        "service": "ロケーションピッカーサービス",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.environment,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """ヘルスチェックエンドポイント"""
    return {"status": "healthy"}


@app.get("/reverse")
async def reverse(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    resolver: AddressResolver = Depends(get_address_resolver),
) -> dict[str, Any]:
    """
    座標から住所を取得

    取得に失敗した場合もセンチネル住所を返す
    """
    location = await resolver.reverse_lookup(Coordinate(latitude=lat, longitude=lng))
    return location.to_dict()


@app.get("/search")
async def search(
    q: str = Query(..., max_length=200),
    lat: Optional[float] = Query(None, ge=-90.0, le=90.0),
    lng: Optional[float] = Query(None, ge=-180.0, le=180.0),
    radius: Optional[float] = Query(None, gt=0),
    resolver: AddressResolver = Depends(get_address_resolver),
) -> dict[str, Any]:
    """
    住所を検索

    Args:
        q: 検索文字列
        lat: バイアス緯度
        lng: バイアス経度
        radius: バイアス半径（メートル）
    """
    bias = Coordinate(latitude=lat, longitude=lng) if lat is not None and lng is not None else None
    results = await resolver.forward_search(
        q,
        bias=bias,
        radius=radius if radius is not None else settings.search_radius,
    )
    return {"query": q, "results": [location.to_dict() for location in results]}


@app.get("/cache/stats")
async def cache_stats(
    resolver: AddressResolver = Depends(get_address_resolver),
) -> dict[str, float]:
    """住所キャッシュの統計"""
    return resolver.get_cache_stats()


@app.websocket("/picker")
async def picker_session(
    websocket: WebSocket,
    factory: PickerSessionFactory = Depends(get_session_factory),
) -> None:
    """
    ピッカーセッション（1接続1セッション）

    クライアントからイベントを受け取り、状態スナップショットとカメラ命令を送信する
    """
    await websocket.accept()

    with bind_session() as session_id:
        outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        controller = factory.create_controller()
        surface = QueueMapSurface(outbox, animation_timeout=factory.settings.camera_animation_timeout)
        session = PickerSession(controller, surface)

        controller.subscribe(
            lambda state: outbox.put_nowait({"type": "state", "state": state.to_dict()})
        )
        await websocket.send_json(
            {"type": "initial_camera", "camera": controller.initial_camera().to_dict()}
        )

        sender = asyncio.create_task(_send_messages(websocket, outbox))
        logger.info(f"Picker session opened: {session_id}")

        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError as e:
                    logger.warning(f"Malformed picker message: {e}")
                    await outbox.put({"type": "error", "detail": f"Malformed message: {e}"})
                    continue

                error = session.handle(message)
                if error:
                    await outbox.put({"type": "error", "detail": error})
        except WebSocketDisconnect:
            logger.info("Picker session closed by client")
        finally:
            controller.dispose()
            session.cancel_tasks()
            await _stop_sender(sender)


class PickerSession:
    """WebSocketのイベントをコントローラーの操作に振り分ける"""

    def __init__(self, controller: SelectionController, surface: QueueMapSurface) -> None:
        self.controller = controller
        self.surface = surface
        self._tasks: set[asyncio.Task] = set()

    def handle(self, message: Any) -> Optional[str]:
        """
        イベントを処理

        Returns:
            Optional[str]: 不正なイベントの場合はエラー内容
        """
        if not isinstance(message, dict):
            logger.warning(f"Picker event is not an object: {message!r}")
            return "Invalid event: expected a JSON object"

        event_type = message.get("type")
        controller = self.controller

        try:
            if event_type == "map_ready":
                self._spawn(controller.on_map_ready(self.surface))
            elif event_type == "camera_move":
                controller.on_camera_move(_coordinate_from(message))
            elif event_type == "camera_idle":
                controller.on_camera_idle()
                self.surface.notify_camera_idle()
            elif event_type == "search":
                controller.set_search_query(str(message.get("query", "")))
            elif event_type == "select_result":
                index = int(message["index"])
                results = controller.state.search_results
                if not 0 <= index < len(results):
                    return f"Search result index out of range: {index}"
                self._spawn(controller.select_search_result(results[index]))
            elif event_type == "go_to_current_location":
                self._spawn(controller.go_to_current_location())
            elif event_type == "retry":
                self._spawn(controller.load_current_position())
            elif event_type == "zoom_in":
                self._spawn(controller.zoom_in())
            elif event_type == "zoom_out":
                self._spawn(controller.zoom_out())
            elif event_type == "clear_error":
                controller.clear_error()
            elif event_type == "clear_search":
                controller.clear_search_results()
            else:
                return f"Unknown event type: {event_type}"
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid picker event {message}: {e}")
            return f"Invalid event: {e}"

        return None

    def cancel_tasks(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    def _spawn(self, coroutine: Any) -> None:
        task = asyncio.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _coordinate_from(message: dict[str, Any]) -> Coordinate:
    return Coordinate(latitude=float(message["latitude"]), longitude=float(message["longitude"]))


async def _send_messages(websocket: WebSocket, outbox: "asyncio.Queue[dict[str, Any]]") -> None:
    """送信キューの内容をクライアントへ送る"""
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


async def _stop_sender(sender: asyncio.Task) -> None:
    """送信タスクを停止し、先に失敗していた場合はその例外をログに残す"""
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.warning(f"Picker message sender failed: {e}")


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """設定エラーハンドラー"""
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=503,
        content={"message": "Service not configured", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """グローバル例外ハンドラー"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
