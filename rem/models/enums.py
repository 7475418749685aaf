"""
열거형 정의 모듈

스크립트 식별자 해석에 사용되는 상수 값들을 열거형으로 정의합니다.
"""

from enum import Enum


class ProviderType(Enum):
    """저장소 제공자 타입 열거형"""
    GIT = "git"
    GITHUB = "github"
    GITLAB = "gitlab"


class AddressingMode(Enum):
    """식별자 주소 지정 방식 열거형"""
    SAVED_ALIAS = "saved_alias"
    DIRECT_GIT = "direct_git"


class ScriptAction(Enum):
    """스크립트 사용 목적 열거형"""
    RUN = "run"
    IMPORT = "import"


class ResolveStage(Enum):
    """스크립트 해석 단계 열거형"""
    PARSE = "parse"
    VALIDATE = "validate"
    RESOLVE_PROVIDER = "resolve_provider"
    FETCH = "fetch"
