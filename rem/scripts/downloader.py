"""
스크립트 해석 오케스트레이터 모듈

식별자 파싱, 확장자 검증, 저장소 선택, 내용 조회를 순서대로 수행하는
메인 인터페이스를 제공합니다.
"""

from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from ..config.settings import Settings, get_settings
from ..exceptions import RemException
from ..models.base import RegisteredRepo, ScriptSource
from ..models.enums import ResolveStage, ScriptAction
from ..utils.logging import get_logger
from .identifier import IdentifierParser, validate_extension
from .registry import ProviderRegistry

logger = get_logger(__name__)


class ScriptResolver:
    """스크립트 해석 오케스트레이터

    재시도하지 않습니다. 하위 단계의 예외는 그대로 다시 발생시키되,
    어느 단계에서 발생했는지 `stage` 속성에 기록합니다.
    """

    def __init__(
        self,
        aliases: Mapping[str, RegisteredRepo],
        settings: Optional[Settings] = None,
        parser: Optional[IdentifierParser] = None,
        registry: Optional[ProviderRegistry] = None
    ):
        """
        오케스트레이터 초기화

        Args:
            aliases: 별칭 -> 저장된 저장소 매핑 (읽기 전용)
            settings: 시스템 설정 (None이면 기본 설정 사용)
            parser: 식별자 파서
            registry: 저장소 제공자 레지스트리 (주입한 경우 세션 정리는 호출자 몫)
        """
        if settings is None:
            settings = get_settings()

        self.settings = settings
        self.logger = logger
        self.parser = parser or IdentifierParser()
        self.registry = registry or ProviderRegistry(aliases, settings)
        self._owns_registry = registry is None

    def parse(self, raw: str, action: ScriptAction) -> ScriptSource:
        """식별자 파싱과 확장자 검증"""
        with _stage(ResolveStage.PARSE):
            source = self.parser.parse(raw, action)

        with _stage(ResolveStage.VALIDATE):
            validate_extension(source, self.settings.required_extension(action))

        return source

    async def resolve_and_fetch(self, raw: str, action: ScriptAction = ScriptAction.RUN, force_fresh: bool = False) -> str:
        """
        식별자를 스크립트 내용으로 해석

        Args:
            raw: 스크립트 식별자
            action: 스크립트 사용 목적 (확장자 검증에만 영향)
            force_fresh: git 캐시를 지우고 새로 받을지 여부

        Returns:
            스크립트 내용

        Raises:
            RemException: 각 단계의 예외 (stage 속성에 단계 기록)
        """
        self.logger.info(f"스크립트 요청: {raw} ({action.value})")

        source = self.parse(raw, action)

        with _stage(ResolveStage.RESOLVE_PROVIDER):
            repository = self.registry.resolve(source)

        async with repository:
            with _stage(ResolveStage.FETCH):
                content = await repository.fetch_script(source.script_path, source.resolved_ref, force_fresh)

        self.logger.info(f"스크립트 반환: {source.script_path}@{source.resolved_ref} ({repository!r})")
        return content

    async def check_repository(self, alias: str) -> str:
        """
        저장된 저장소 접근 가능 여부 확인

        Args:
            alias: 저장소 별칭

        Returns:
            저장소 설명 문자열
        """
        with _stage(ResolveStage.RESOLVE_PROVIDER):
            repository = self.registry.get(alias)

        async with repository:
            with _stage(ResolveStage.FETCH):
                await repository.check()

        self.logger.info(f"저장소 확인 완료: {alias} ({repository!r})")
        return repr(repository)

    async def close(self) -> None:
        """직접 만든 레지스트리의 리소스만 정리"""
        if self._owns_registry and self.registry.session is not None:
            await self.registry.session.close()

    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        await self.close()


@contextmanager
def _stage(stage: ResolveStage) -> Iterator[None]:
    """블록 안에서 발생한 RemException에 단계 기록 (이미 기록된 단계는 유지)"""
    try:
        yield
    except RemException as e:
        if e.stage is None:
            e.stage = stage
        raise


# 편의 함수
async def resolve_script(
    raw: str,
    action: ScriptAction,
    aliases: Mapping[str, RegisteredRepo],
    force_fresh: bool = False,
    settings: Optional[Settings] = None
) -> str:
    """
    편의 함수: 식별자를 스크립트 내용으로 해석

    Args:
        raw: 스크립트 식별자
        action: 스크립트 사용 목적
        aliases: 별칭 -> 저장된 저장소 매핑
        force_fresh: git 캐시를 지우고 새로 받을지 여부
        settings: 시스템 설정

    Returns:
        스크립트 내용
    """
    async with ScriptResolver(aliases, settings) as resolver:
        return await resolver.resolve_and_fetch(raw, action, force_fresh)
