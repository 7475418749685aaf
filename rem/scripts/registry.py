"""
저장소 제공자 선택 모듈

ScriptSource를 보고 스크립트를 가져올 저장소 인스턴스를 고릅니다.
"""

from typing import Mapping, Optional

import aiohttp

from ..exceptions import ConfigurationException, RepoNotFoundException
from ..models.base import RegisteredRepo, ScriptSource
from ..models.enums import AddressingMode, ProviderType
from ..utils.logging import get_logger
from .cache_manager import GitCache
from .repository import GitRepository, GithubRepository, GitlabRepository, RepositoryBase

logger = get_logger(__name__)


class ProviderRegistry:
    """저장소 제공자 레지스트리

    저장된 별칭은 주입된 읽기 전용 매핑(별칭 -> RegisteredRepo)에서 찾습니다.
    선택만 하며 네트워크나 git 작업은 하지 않습니다.
    """

    def __init__(
        self,
        aliases: Mapping[str, RegisteredRepo],
        settings,
        git_cache: Optional[GitCache] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        레지스트리 초기화

        Args:
            aliases: 별칭 -> 저장된 저장소 매핑
            settings: 시스템 설정
            git_cache: git 저장소가 공유할 캐시
            session: HTTP 저장소가 공유할 세션
        """
        self.aliases = aliases
        self.settings = settings
        self.git_cache = git_cache or GitCache(settings)
        self.session = session
        self.logger = logger

    def resolve(self, source: ScriptSource) -> RepositoryBase:
        """
        ScriptSource에 맞는 저장소 선택

        Args:
            source: 파싱된 ScriptSource

        Returns:
            저장소 인스턴스

        Raises:
            RepoNotFoundException: 저장된 별칭이 없을 때
        """
        if source.addressing_mode == AddressingMode.DIRECT_GIT:
            return GitRepository(self.settings, source.repo_locator, self.git_cache)

        registered = self.aliases.get(source.repo_locator)
        if registered is None:
            raise RepoNotFoundException(source.repo_locator)

        self.logger.debug(f"저장된 저장소 선택: {source.repo_locator} -> {registered.describe()}")
        return self.from_registered(registered)

    def from_registered(self, registered: RegisteredRepo) -> RepositoryBase:
        """저장된 저장소 정보로 저장소 인스턴스 생성"""
        provider = registered.provider

        if provider == ProviderType.GITHUB:
            return GithubRepository(
                self.settings,
                registered.uri,
                username=registered.username,
                credential=registered.credential,
                session=self.session,
            )

        elif provider == ProviderType.GITLAB:
            return GitlabRepository(
                self.settings,
                registered.uri,
                credential=registered.credential,
                session=self.session,
            )

        elif provider == ProviderType.GIT:
            return GitRepository(self.settings, registered.uri, self.git_cache)

        else:
            raise ConfigurationException("provider", f"지원하지 않는 저장소 타입: {provider}")

    def get(self, alias: str) -> RepositoryBase:
        """별칭으로 저장소 인스턴스 조회"""
        registered = self.aliases.get(alias)
        if registered is None:
            raise RepoNotFoundException(alias)
        return self.from_registered(registered)

    def list_aliases(self) -> list[str]:
        """저장된 저장소 목록 ("별칭: 제공자 | uri")"""
        return [f"{alias}: {repo.describe()}" for alias, repo in sorted(self.aliases.items())]
