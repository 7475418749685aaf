"""
스크립트 식별자 파서 모듈

`alias(@ref)?:path` 형태의 저장된 저장소 식별자와
`repoURL(@ref)?:path` 형태의 git URL 식별자를 ScriptSource로 변환합니다.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Pattern

from ..exceptions import ExtensionMismatchException, UnrecognizedIdentifierException
from ..models.base import ScriptSource
from ..models.enums import AddressingMode, ScriptAction
from ..utils.logging import get_logger

logger = get_logger(__name__)

# ref는 '-'로 시작할 수 없음 (git 옵션으로 해석되지 않도록)
_REF = r"(?:@(?P<ref>(?!-)[^\s:@]+))?"

ALIAS_PATTERN = (
    r"(?P<alias>[A-Za-z0-9_.-]+)"
    + _REF
    # 별칭 식별자의 경로에는 이스케이프하지 않은 ':' 를 쓸 수 없고 '//' 로 시작할 수 없음
    + r":(?P<path>(?!//)(?:[^:\\\n]|\\[^\n])+)"
)

_URL_REPO = (
    r"(?:git|ssh|https?)://"
    r"(?:[^@/\s]+@)?"
    r"[A-Za-z0-9_.-]+(?::\d+)?"
    r"/[^\s:@]+"
)
_SCP_REPO = r"[A-Za-z0-9_.][A-Za-z0-9_.-]*@[A-Za-z0-9_.-]+:[^\s:@]+"

DIRECT_GIT_PATTERN = (
    rf"(?P<repo>{_URL_REPO}|{_SCP_REPO})"
    + _REF
    + r":(?P<path>(?:[^\\\n]|\\[^\n])+)"
)

_ESCAPE = re.compile(r"\\(.)")


@dataclass(frozen=True)
class IdentifierGrammar:
    """한 번만 컴파일되는 식별자 문법 (불변 값)"""

    alias: Pattern[str]
    direct_git: Pattern[str]

    @classmethod
    def compile(cls) -> "IdentifierGrammar":
        return cls(
            alias=re.compile(ALIAS_PATTERN),
            direct_git=re.compile(DIRECT_GIT_PATTERN),
        )


DEFAULT_GRAMMAR = IdentifierGrammar.compile()


def _unescape(path: str) -> str:
    return _ESCAPE.sub(r"\1", path)


class IdentifierParser:
    """스크립트 식별자 파서"""

    def __init__(self, grammar: IdentifierGrammar = DEFAULT_GRAMMAR):
        """
        파서 초기화

        Args:
            grammar: 미리 컴파일된 식별자 문법
        """
        self.grammar = grammar
        self.logger = logger

    def parse(self, raw: str, action: ScriptAction = ScriptAction.RUN) -> ScriptSource:
        """
        식별자 파싱

        저장된 저장소 문법을 먼저 시도하고, 맞지 않을 때만 git URL 문법을 시도합니다.

        Args:
            raw: 원본 식별자 문자열
            action: 스크립트 사용 목적

        Returns:
            파싱된 ScriptSource

        Raises:
            UnrecognizedIdentifierException: 두 문법 모두 맞지 않을 때
        """
        match = self.grammar.alias.fullmatch(raw)
        if match:
            source = ScriptSource(
                repo_locator=match.group("alias"),
                script_path=_unescape(match.group("path")),
                ref=match.group("ref"),
                addressing_mode=AddressingMode.SAVED_ALIAS,
                action=action,
            )
            self.logger.debug(f"저장된 저장소 식별자: {source.repo_locator} -> {source.script_path}")
            return source

        match = self.grammar.direct_git.fullmatch(raw)
        if match:
            source = ScriptSource(
                repo_locator=match.group("repo"),
                script_path=_unescape(match.group("path")),
                ref=match.group("ref"),
                addressing_mode=AddressingMode.DIRECT_GIT,
                action=action,
            )
            self.logger.debug(f"git URL 식별자: {source.repo_locator} -> {source.script_path}")
            return source

        raise UnrecognizedIdentifierException(raw)


def validate_extension(source: ScriptSource, expected_extension: Optional[str]) -> None:
    """
    스크립트 경로의 확장자 검증

    Args:
        source: 파싱된 ScriptSource
        expected_extension: 요구되는 확장자 ("bash" 또는 ".bash", None이면 검증 생략)

    Raises:
        ExtensionMismatchException: 확장자가 다를 때
    """
    if not expected_extension:
        return

    expected = expected_extension if expected_extension.startswith(".") else f".{expected_extension}"
    if PurePosixPath(source.script_path).suffix != expected:
        raise ExtensionMismatchException(source.script_path, expected)


def parse_identifier(raw: str, action: ScriptAction = ScriptAction.RUN) -> ScriptSource:
    """편의 함수: 기본 문법으로 식별자 파싱"""
    return IdentifierParser().parse(raw, action)
