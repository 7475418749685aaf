"""
인증 정보 데이터 모델 모듈

비밀번호 값 또는 사용 시점에 값을 읽어올 환경 변수 참조를 표현합니다.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from ..exceptions import AmbiguousCredentialException


@dataclass(frozen=True)
class LiteralCredential:
    """저장된 비밀번호 값"""

    value: str = field(repr=False)


@dataclass(frozen=True)
class EnvCredential:
    """사용 시점에 읽는 환경 변수 참조"""

    var_name: str


Credential = Union[LiteralCredential, EnvCredential]


def credential_from_fields(password: Optional[str], password_env: Optional[str]) -> Optional[Credential]:
    """
    저장 형식(password, password_env)에서 인증 정보 복원

    Args:
        password: 저장된 비밀번호
        password_env: 비밀번호를 담은 환경 변수 이름

    Returns:
        인증 정보 (둘 다 없으면 None)

    Raises:
        AmbiguousCredentialException: 두 필드가 모두 지정되었을 때
    """
    if password is not None and password_env is not None:
        raise AmbiguousCredentialException(["password", "password_env"])
    if password is not None:
        return LiteralCredential(password)
    if password_env is not None:
        return EnvCredential(password_env)
    return None


def credential_to_fields(credential: Optional[Credential]) -> tuple[Optional[str], Optional[str]]:
    """인증 정보를 저장 형식 (password, password_env) 튜플로 변환"""
    if isinstance(credential, LiteralCredential):
        return credential.value, None
    if isinstance(credential, EnvCredential):
        return None, credential.var_name
    return None, None
