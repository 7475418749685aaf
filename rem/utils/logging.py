"""
로깅 시스템 모듈

한국어 레벨명과 인증 정보 마스킹을 지원하는 통합 로깅 시스템을 제공합니다.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from ..config.settings import Settings
from .helpers import mask_secrets


class KoreanFormatter(logging.Formatter):
    """한국어 레벨명을 사용하고 URL 인증 정보를 가리는 포맷터"""

    level_mapping = {
        'DEBUG': '디버그',
        'INFO': '정보',
        'WARNING': '경고',
        'ERROR': '오류',
        'CRITICAL': '치명적'
    }

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(fmt, datefmt)

    def format(self, record: logging.LogRecord) -> str:
        """
        로그 레코드를 한국어 형식으로 포맷팅

        Args:
            record: 로그 레코드

        Returns:
            str: 포맷되고 인증 정보가 가려진 로그 메시지
        """
        original_levelname = record.levelname
        record.levelname = self.level_mapping.get(original_levelname, original_levelname)
        try:
            formatted = super().format(record)
        finally:
            record.levelname = original_levelname

        return mask_secrets(formatted)


def setup_logging(settings: Settings) -> logging.Logger:
    """
    rem 로깅 시스템 설정

    Args:
        settings: 시스템 설정 객체

    Returns:
        logging.Logger: 설정된 로거 객체
    """
    logger = logging.getLogger("rem")
    logger.setLevel(getattr(logging, settings.log_level.upper()))

    # 기존 핸들러 제거 (중복 방지)
    logger.handlers.clear()

    formatter = KoreanFormatter(
        fmt=settings.log_format,
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # 스크립트 내용은 stdout으로 나가므로 로그는 stderr로
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_file:
        log_file_path = Path(settings.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        # 로테이팅 파일 핸들러 (1MB, 3개 백업)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file_path,
            maxBytes=1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False

    logger.debug("로깅 시스템이 초기화되었습니다")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    특정 이름의 로거를 반환합니다

    Args:
        name: 로거 이름 (보통 모듈의 __name__)

    Returns:
        logging.Logger: rem 계층 아래의 로거 객체
    """
    if name == "rem" or name.startswith("rem."):
        return logging.getLogger(name)
    return logging.getLogger(f"rem.{name}")
