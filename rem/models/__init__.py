"""
데이터 모델 패키지

스크립트 식별자 해석의 핵심 데이터 모델들을 정의합니다.
"""

from .base import DEFAULT_REF, RegisteredRepo, ScriptSource
from .credentials import Credential, EnvCredential, LiteralCredential
from .enums import AddressingMode, ProviderType, ResolveStage, ScriptAction

__all__ = [
    "DEFAULT_REF",
    "RegisteredRepo",
    "ScriptSource",
    "Credential",
    "EnvCredential",
    "LiteralCredential",
    "AddressingMode",
    "ProviderType",
    "ResolveStage",
    "ScriptAction",
]
