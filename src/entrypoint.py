"""CLIエントリーポイント"""
import argparse
import asyncio
import json
import sys
from typing import Any, Optional

from .features.picker.session_factory import PickerSessionFactory
from .infrastructure.config.settings import Settings
from .shared.exceptions.errors import LocationPickerError
from .shared.logging.config import get_logger, setup_logging
from .shared.utils.geo import Coordinate

logger = get_logger(__name__)


def parse_coordinate(value: str) -> Coordinate:
    """ "lat,lng" 形式の文字列を座標に変換"""
    try:
        lat_text, lng_text = value.split(",")
        return Coordinate(latitude=float(lat_text), longitude=float(lng_text))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid coordinate (expected 'lat,lng'): {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ロケーションピッカー 住所解決ツール")

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="環境変数ファイルのパス（デフォルト: .env）",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="ログレベル",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    reverse_parser = subparsers.add_parser("reverse", help="座標から住所を取得")
    reverse_parser.add_argument("coordinate", type=parse_coordinate, help="座標（lat,lng）")

    search_parser = subparsers.add_parser("search", help="住所を検索")
    search_parser.add_argument("query", type=str, help="検索文字列")
    search_parser.add_argument(
        "--near",
        type=parse_coordinate,
        help="結果を寄せる座標（lat,lng）",
    )
    search_parser.add_argument("--radius", type=float, help="バイアス半径（メートル）")

    subparsers.add_parser("locate", help="現在位置と住所を取得")

    track_parser = subparsers.add_parser("track", help="現在位置を追跡")
    track_parser.add_argument(
        "--count",
        type=int,
        default=5,
        help="取得する位置の数（デフォルト: 5）",
    )

    return parser


async def run_command(args: argparse.Namespace, factory: PickerSessionFactory) -> Any:
    """
    サブコマンドを実行

    Returns:
        JSONに変換可能な結果
    """
    settings = factory.settings

    if args.command == "reverse":
        resolver = factory.create_address_resolver()
        location = await resolver.reverse_lookup(args.coordinate)
        return location.to_dict()

    if args.command == "search":
        resolver = factory.create_address_resolver()
        results = await resolver.forward_search(
            args.query,
            bias=args.near,
            radius=args.radius if args.radius is not None else settings.search_radius,
        )
        return [location.to_dict() for location in results]

    if args.command == "locate":
        provider = factory.create_position_provider()
        resolver = factory.create_address_resolver()
        position = await provider.acquire()
        location = await resolver.reverse_lookup(position)
        return location.to_dict()

    if args.command == "track":
        provider = factory.create_position_provider()
        positions = []
        async for position in provider.track(
            min_distance_meters=settings.position_distance_filter
        ):
            logger.info(f"Position update: {position}")
            positions.append(position.to_dict())
            if len(positions) >= args.count:
                break
        return positions

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    """
    メインエントリーポイント

    Returns:
        int: 終了コード（0: 成功, 1: 失敗）
    """
    args = build_parser().parse_args(argv)

    try:
        settings = Settings(_env_file=args.env_file)

        if args.log_level:
            settings.log_level = args.log_level

        setup_logging(
            level=settings.log_level,
            enable_cloud_logging=settings.gcp_logging_enabled,
            project_id=settings.gcp_project_id,
        )

        logger.info(f"Running command: {args.command}")
        result = asyncio.run(run_command(args, PickerSessionFactory(settings)))

        print(json.dumps(result, ensure_ascii=False, indent=2))
        return 0

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # SIGINT
    except LocationPickerError as e:
        logger.error(f"Command failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
