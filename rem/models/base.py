"""
기본 데이터 모델 모듈

스크립트 식별자 해석 결과와 저장된 저장소 정보를 정의합니다.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..exceptions import UsernameRequiresCredentialException
from .credentials import Credential, credential_from_fields
from .enums import AddressingMode, ProviderType, ScriptAction

# ref가 지정되지 않았을 때 사용하는 "최신" 기준
DEFAULT_REF = "HEAD"


class ScriptSource(BaseModel):
    """파싱된 스크립트 식별자 데이터 모델"""

    repo_locator: str = Field(
        ...,
        description="저장된 저장소 별칭 또는 git URL",
        min_length=1
    )
    script_path: str = Field(
        ...,
        description="저장소 내부의 스크립트 경로",
        min_length=1
    )
    ref: Optional[str] = Field(
        default=None,
        description="git ref (지정하지 않으면 HEAD 사용)"
    )
    addressing_mode: AddressingMode = Field(
        ...,
        description="주소 지정 방식"
    )
    action: ScriptAction = Field(
        default=ScriptAction.RUN,
        description="스크립트 사용 목적"
    )

    @property
    def resolved_ref(self) -> str:
        """실제로 조회할 ref"""
        return self.ref or DEFAULT_REF


class RegisteredRepo(BaseModel):
    """저장된 저장소 데이터 모델

    설정 파일에 저장되는 형식 그대로이며, 환경 변수 비밀번호는 변수 이름만 보관합니다.
    """

    provider: ProviderType = Field(
        ...,
        description="저장소 제공자"
    )
    uri: str = Field(
        ...,
        description="제공자별 프로젝트 식별자 또는 git URL",
        min_length=1
    )
    username: Optional[str] = Field(
        default=None,
        description="사용자 이름"
    )
    password: Optional[str] = Field(
        default=None,
        description="저장된 비밀번호 또는 토큰"
    )
    password_env: Optional[str] = Field(
        default=None,
        description="사용 시점에 비밀번호를 읽을 환경 변수 이름"
    )

    @model_validator(mode="after")
    def _check_credential_fields(self) -> "RegisteredRepo":
        # 두 필드가 모두 있으면 AmbiguousCredentialException
        credential = credential_from_fields(self.password, self.password_env)
        if self.username and credential is None:
            raise UsernameRequiresCredentialException(self.username)
        return self

    @property
    def credential(self) -> Optional[Credential]:
        """저장 필드에서 인증 정보 복원"""
        return credential_from_fields(self.password, self.password_env)

    def describe(self) -> str:
        return f"{self.provider.value} | {self.uri}"
