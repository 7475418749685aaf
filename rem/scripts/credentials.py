"""
인증 정보 해석 모듈

비밀번호 입력 소스(직접 입력, 환경 변수, 표준 입력)를 인증 정보로 변환하고,
환경 변수 참조는 사용 시점에만 실제 값으로 해석합니다.
"""

import os
import sys
from typing import Mapping, Optional, TextIO

from ..exceptions import AmbiguousCredentialException, ConfigurationException, MissingCredentialEnvException
from ..models.credentials import (
    Credential,
    EnvCredential,
    LiteralCredential,
    credential_from_fields,
    credential_to_fields,
)
from ..utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "credential_from_fields",
    "credential_from_inputs",
    "credential_to_fields",
    "resolve_credential",
]


def credential_from_inputs(
    password: Optional[str] = None,
    password_env: Optional[str] = None,
    password_stdin: bool = False,
    stdin: Optional[TextIO] = None
) -> Optional[Credential]:
    """
    사용자 입력 소스에서 인증 정보 생성

    Args:
        password: 직접 입력한 비밀번호 또는 토큰
        password_env: 사용 시점에 비밀번호를 읽을 환경 변수 이름
        password_stdin: 표준 입력에서 비밀번호를 읽을지 여부
        stdin: 표준 입력 대신 사용할 스트림 (기본값: sys.stdin)

    Returns:
        인증 정보 (입력이 없으면 None)

    Raises:
        AmbiguousCredentialException: 두 개 이상의 소스가 지정되었을 때
        ConfigurationException: 표준 입력이 비어 있을 때
    """
    sources = [
        name for name, given in (
            ("password", password is not None),
            ("password_env", password_env is not None),
            ("password_stdin", password_stdin),
        )
        if given
    ]
    if len(sources) > 1:
        raise AmbiguousCredentialException(sources)

    if password_stdin:
        stream = stdin if stdin is not None else sys.stdin
        value = stream.readline().rstrip("\r\n")
        if not value:
            raise ConfigurationException("password_stdin", "표준 입력에서 비밀번호를 읽지 못했습니다")
        logger.debug("표준 입력에서 비밀번호를 읽었습니다")
        return LiteralCredential(value)

    if password_env is not None:
        if not password_env:
            raise ConfigurationException("password_env", "환경 변수 이름이 비어 있습니다")
        return EnvCredential(password_env)

    if password is not None:
        return LiteralCredential(password)

    return None


def resolve_credential(
    credential: Optional[Credential],
    environ: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """
    인증 정보를 실제 비밀 값으로 해석 (요청 직전에 호출)

    Args:
        credential: 인증 정보
        environ: 환경 변수 매핑 (기본값: os.environ)

    Returns:
        비밀 값 (인증 정보가 없으면 None)

    Raises:
        MissingCredentialEnvException: 참조한 환경 변수가 없을 때
    """
    if credential is None:
        return None

    if isinstance(credential, LiteralCredential):
        return credential.value

    env = os.environ if environ is None else environ
    value = env.get(credential.var_name)
    if value is None:
        raise MissingCredentialEnvException(credential.var_name)
    return value
