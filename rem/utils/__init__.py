"""
유틸리티 패키지

공통으로 사용되는 유틸리티 함수들을 포함합니다.
"""

from .helpers import mask_secrets, sanitize_path_segment
from .logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "mask_secrets",
    "sanitize_path_segment",
    "setup_logging",
]
