"""
스크립트 해석 모듈

식별자를 파싱하고, 저장된 저장소 또는 git URL에서 스크립트 내용을 가져오는 시스템을 제공합니다.
"""

from .cache_manager import GitCache
from .credentials import credential_from_inputs, resolve_credential
from .downloader import ScriptResolver, resolve_script
from .identifier import IdentifierGrammar, IdentifierParser, parse_identifier, validate_extension
from .registration import fetch_project
from .registry import ProviderRegistry
from .repository import GithubRepository, GitlabRepository, GitRepository, RepositoryBase

__all__ = [
    "GitCache",
    "ScriptResolver",
    "IdentifierGrammar",
    "IdentifierParser",
    "ProviderRegistry",
    "GitRepository",
    "GithubRepository",
    "GitlabRepository",
    "RepositoryBase",
    "credential_from_inputs",
    "resolve_credential",
    "fetch_project",
    "parse_identifier",
    "resolve_script",
    "validate_extension",
]
