"""
설정 관리 모듈

환경 변수(REM_ 접두사)를 통한 시스템 설정을 관리합니다.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from ..exceptions import ConfigurationException
from ..models.enums import ScriptAction


def default_cache_dir() -> str:
    """플랫폼 캐시 루트 (XDG_CACHE_HOME 또는 ~/.cache)"""
    base = os.environ.get("XDG_CACHE_HOME", str(Path.home() / ".cache"))
    return str(Path(base))


class Settings(BaseSettings):
    """시스템 설정 관리 클래스"""

    # 캐시 설정
    cache_dir: str = Field(
        default_factory=default_cache_dir,
        description="플랫폼 캐시 루트 (git 작업 트리는 그 아래 rem/ 에 저장)"
    )

    # 스크립트 확장자 요구사항
    require_bash_extension: Optional[str] = Field(
        default=None,
        description="run 대상 스크립트에 요구되는 확장자 (예: bash)"
    )
    require_lib_extension: Optional[str] = Field(
        default=None,
        description="import 대상 스크립트에 요구되는 확장자"
    )

    # 원격 API 설정
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API 기본 URL"
    )
    gitlab_api_url: str = Field(
        default="https://gitlab.com/api/v4",
        description="GitLab REST API 기본 URL"
    )
    user_agent: str = Field(
        default="rem-bash",
        description="HTTP 요청 User-Agent"
    )

    # 로깅 설정
    log_level: str = Field(
        default="WARNING",
        description="로그 레벨"
    )
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="로그 포맷"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="로그 파일 경로"
    )

    class Config:
        env_prefix = "REM_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def git_cache_root(self) -> Path:
        """git 작업 트리 캐시 루트"""
        return Path(self.cache_dir) / "rem"

    def required_extension(self, action: ScriptAction) -> Optional[str]:
        """작업 종류별 요구 확장자"""
        if action == ScriptAction.RUN:
            return self.require_bash_extension
        return self.require_lib_extension

    def validate_configuration(self) -> None:
        """설정 유효성 검증"""
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationException("REM_LOG_LEVEL", f"알 수 없는 로그 레벨입니다: {self.log_level}")

        for key, url in (("REM_GITHUB_API_URL", self.github_api_url),
                         ("REM_GITLAB_API_URL", self.gitlab_api_url)):
            if not url.startswith(("http://", "https://")):
                raise ConfigurationException(key, f"http(s) URL이어야 합니다: {url}")

        # 캐시 디렉토리 생성
        os.makedirs(self.git_cache_root, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    설정 인스턴스를 반환합니다 (싱글톤 패턴)

    Returns:
        Settings: 설정 인스턴스
    """
    settings = Settings()
    settings.validate_configuration()
    return settings
