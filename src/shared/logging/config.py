"""ロギング設定"""
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

LOG_FORMAT = "%(asctime)s - [%(session_id)s] - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 出力を抑えるサードパーティロガー
NOISY_LOGGERS = ("urllib3", "google", "googlemaps", "asyncio", "websockets")

# 現在のピッカーセッションID（セッション外は"-"）
session_id_ctx: ContextVar[str] = ContextVar("session_id", default="-")

_logger_configured = False


class SessionContextFilter(logging.Filter):
    """ログレコードにピッカーセッションIDを付与する"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_ctx.get()
        return True


@contextmanager
def bind_session(session_id: Optional[str] = None) -> Iterator[str]:
    """
    ブロック内のログにセッションIDを付与

    ブロック内で作成したタスクにも引き継がれる

    Args:
        session_id: セッションID（Noneの場合は新規発行）

    Yields:
        str: 使用するセッションID
    """
    session_id = session_id or uuid.uuid4().hex[:8]
    token = session_id_ctx.set(session_id)
    try:
        yield session_id
    finally:
        session_id_ctx.reset(token)


def setup_logging(
    level: str = "INFO",
    enable_cloud_logging: bool = False,
    project_id: Optional[str] = None,
) -> None:
    """
    ロギングを設定（プロセス内で一度だけ有効）

    Args:
        level: ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_cloud_logging: Cloud Loggingを有効にするか
        project_id: GCPプロジェクトID (Cloud Logging有効時に必要)
    """
    global _logger_configured

    if _logger_configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    session_filter = SessionContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.addFilter(session_filter)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    # Cloud Logging（本番環境用）
    if enable_cloud_logging:
        try:
            from google.cloud import logging as cloud_logging

            client = cloud_logging.Client(project=project_id)
            cloud_handler = cloud_logging.handlers.CloudLoggingHandler(
                client, name="location-picker"
            )
            cloud_handler.setLevel(log_level)
            cloud_handler.addFilter(session_filter)
            root_logger.addHandler(cloud_handler)

            logging.info("Cloud Logging enabled")
        except Exception as e:
            logging.warning(f"Failed to enable Cloud Logging: {e}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logger_configured = True
    logging.info(f"Logging configured with level: {level}")


def get_logger(name: str) -> logging.Logger:
    """
    指定名のロガーを取得

    Args:
        name: ロガー名（通常は__name__を指定）
    """
    return logging.getLogger(name)
