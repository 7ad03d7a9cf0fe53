#!/usr/bin/env python3
"""ローカル開発用のピッカーセッション実行スクリプト"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# プロジェクトルートをPythonパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.features.picker.domain.models import SelectionState
from src.features.picker.session_factory import PickerSessionFactory
from src.features.picker.surfaces.base import MapSurface
from src.infrastructure.config.settings import Settings
from src.shared.logging.config import setup_logging, get_logger
from src.shared.utils.geo import Coordinate

logger = get_logger(__name__)


class ConsoleMapSurface(MapSurface):
    """カメラ命令をログに出すだけのサーフェス"""

    async def animate_camera(self, target: Coordinate, zoom: float) -> None:
        logger.info(f"[camera] animate to {target} (zoom={zoom})")

    async def zoom_in(self) -> None:
        logger.info("[camera] zoom in")

    async def zoom_out(self) -> None:
        logger.info("[camera] zoom out")


def print_state(state: SelectionState) -> None:
    address = state.selected_location.address if state.selected_location else "-"
    logger.info(
        f"[state] selected={state.selected_position} address={address} "
        f"loading={state.is_loading} searching={state.is_searching} "
        f"results={len(state.search_results)} error={state.error_message}"
    )


async def run_session(
    settings: Settings, drag_to: Optional[Coordinate], query: Optional[str]
) -> None:
    controller = PickerSessionFactory(settings).create_controller()
    controller.subscribe(print_state)

    try:
        await controller.on_map_ready(ConsoleMapSurface())

        if drag_to is not None:
            # 地図のドラッグを模擬（途中の位置はデバウンスで捨てられる）
            start = controller.state.selected_position
            for step in range(1, 6):
                ratio = step / 5
                controller.on_camera_move(
                    Coordinate(
                        latitude=start.latitude + (drag_to.latitude - start.latitude) * ratio,
                        longitude=start.longitude + (drag_to.longitude - start.longitude) * ratio,
                    )
                )
                await asyncio.sleep(0.05)
            controller.on_camera_idle()
            await asyncio.sleep(controller.config.debounce_time + settings.reverse_geocoding_timeout)

        if query:
            await controller.search_addresses(query)
            if controller.state.search_results:
                await controller.select_search_result(controller.state.search_results[0])

        location = controller.state.selected_location
        logger.info(f"Final selection: {location.to_dict() if location else None}")
    finally:
        controller.dispose()


def main():
    """メイン関数"""
    parser = argparse.ArgumentParser(
        description="ロケーションピッカーのセッション実行ツール（ローカル開発用）"
    )
    parser.add_argument(
        "--drag-to",
        type=str,
        help="ドラッグ先の座標（lat,lng）",
    )
    parser.add_argument(
        "--search",
        "-s",
        type=str,
        help="検索して最初の結果を選択する文字列",
    )
    parser.add_argument(
        "--debug",
        "-d",
        action="store_true",
        help="デバッグモードで実行",
    )

    args = parser.parse_args()

    settings = Settings()

    log_level = "DEBUG" if args.debug else settings.log_level
    setup_logging(level=log_level)

    drag_to = None
    if args.drag_to:
        lat_text, lng_text = args.drag_to.split(",")
        drag_to = Coordinate(latitude=float(lat_text), longitude=float(lng_text))

    logger.info("=" * 80)
    logger.info("ロケーションピッカー セッション（ローカル開発用）")
    logger.info("=" * 80)
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debounce: {settings.debounce_time_ms}ms")
    logger.info(f"Language/Region: {settings.language}/{settings.region}")
    logger.info("=" * 80)

    try:
        asyncio.run(run_session(settings, drag_to, args.search))
    except KeyboardInterrupt:
        logger.warning("Session interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Session failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
