"""
예외 클래스 정의 모듈

스크립트 식별자 해석과 저장소 조회 과정에서 사용되는 커스텀 예외들을 정의합니다.
"""

from typing import Optional


class RemException(Exception):
    """rem 기본 예외 클래스"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        """
        예외 초기화

        Args:
            message: 오류 메시지
            error_code: 오류 코드 (선택사항)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        # 오케스트레이터가 오류가 발생한 단계를 기록합니다 (models.enums.ResolveStage)
        self.stage = None


class ScriptParseException(RemException):
    """스크립트 식별자 파싱 관련 예외"""


class UnrecognizedIdentifierException(ScriptParseException):
    """어떤 문법에도 맞지 않는 식별자일 때 발생하는 예외"""

    def __init__(self, raw: str):
        """
        식별자 인식 실패 예외 초기화

        Args:
            raw: 원본 식별자 문자열
        """
        message = f"스크립트 식별자를 인식할 수 없습니다: {raw}"
        super().__init__(message, "UNRECOGNIZED_IDENTIFIER")
        self.raw = raw


class ExtensionMismatchException(ScriptParseException):
    """스크립트 확장자가 요구사항과 다를 때 발생하는 예외"""

    def __init__(self, script_path: str, expected_extension: str):
        """
        확장자 불일치 예외 초기화

        Args:
            script_path: 스크립트 경로
            expected_extension: 요구되는 확장자
        """
        message = f"스크립트 확장자가 일치하지 않습니다: {script_path} (필요: {expected_extension})"
        super().__init__(message, "EXTENSION_MISMATCH")
        self.script_path = script_path
        self.expected_extension = expected_extension


class ConfigurationException(RemException):
    """설정 오류 시 발생하는 예외"""

    def __init__(self, config_key: str, error_detail: str):
        """
        설정 예외 초기화

        Args:
            config_key: 설정 키
            error_detail: 오류 상세 정보
        """
        message = f"설정 오류: {config_key} - {error_detail}"
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_key = config_key
        self.error_detail = error_detail


class AmbiguousCredentialException(ConfigurationException):
    """비밀번호 입력 소스가 둘 이상 지정되었을 때 발생하는 예외"""

    def __init__(self, sources: list):
        """
        모호한 인증 정보 예외 초기화

        Args:
            sources: 동시에 지정된 입력 소스 이름 목록
        """
        super().__init__(
            "password",
            f"비밀번호 소스는 하나만 지정할 수 있습니다: {', '.join(sources)}"
        )
        self.error_code = "AMBIGUOUS_CREDENTIAL"
        self.sources = sources


class UsernameRequiresCredentialException(ConfigurationException):
    """비밀번호 없이 사용자 이름만 지정되었을 때 발생하는 예외"""

    def __init__(self, username: str):
        super().__init__("username", f"사용자 이름에는 비밀번호가 필요합니다: {username}")
        self.error_code = "USERNAME_REQUIRES_CREDENTIAL"
        self.username = username


class RepoNotFoundException(RemException):
    """저장된 저장소 별칭을 찾을 수 없을 때 발생하는 예외"""

    def __init__(self, alias: str):
        """
        저장소 찾기 실패 예외 초기화

        Args:
            alias: 저장소 별칭
        """
        message = f"저장된 저장소를 찾을 수 없습니다: {alias} (저장된 저장소 목록을 확인하세요)"
        super().__init__(message, "REPO_NOT_FOUND")
        self.alias = alias


class ScriptFetchException(RemException):
    """스크립트 내용 조회 관련 예외"""


class GitCommandFailedException(ScriptFetchException):
    """git 명령 실행 실패 시 발생하는 예외"""

    def __init__(self, command: str, stderr: str):
        """
        git 명령 실패 예외 초기화

        Args:
            command: 실패한 명령
            stderr: 캡처된 표준 에러
        """
        message = f"git 명령 실패: {command}\n{stderr}"
        super().__init__(message, "GIT_COMMAND_FAILED")
        self.command = command
        self.stderr = stderr


class RemoteApiException(ScriptFetchException):
    """원격 API가 2xx 이외의 응답을 반환했을 때 발생하는 예외"""

    def __init__(self, provider: str, status: int, body: str):
        """
        원격 API 예외 초기화

        Args:
            provider: 제공자 이름 (github, gitlab)
            status: HTTP 상태 코드
            body: 응답 본문
        """
        message = f"{provider} API 오류 응답 (HTTP {status}): {body}"
        super().__init__(message, "REMOTE_API_ERROR")
        self.provider = provider
        self.status = status
        self.body = body


class MissingCredentialEnvException(ScriptFetchException):
    """인증 정보 환경 변수가 설정되지 않았을 때 발생하는 예외"""

    def __init__(self, var_name: str):
        message = f"인증 정보 환경 변수가 설정되지 않았습니다: {var_name}"
        super().__init__(message, "MISSING_CREDENTIAL_ENV")
        self.var_name = var_name


class ContentDecodeException(ScriptFetchException):
    """응답 내용 디코딩 실패 시 발생하는 예외"""

    def __init__(self, error_detail: str):
        message = f"스크립트 내용 디코딩 실패: {error_detail}"
        super().__init__(message, "CONTENT_DECODE_ERROR")
        self.error_detail = error_detail


class ContentReadException(ScriptFetchException):
    """캐시된 작업 트리에서 스크립트를 읽지 못했을 때 발생하는 예외"""

    def __init__(self, script_path: str, error_detail: str):
        """
        스크립트 읽기 예외 초기화

        Args:
            script_path: 스크립트 경로
            error_detail: 오류 상세 정보
        """
        message = f"스크립트를 읽을 수 없습니다: {script_path} - {error_detail}"
        super().__init__(message, "CONTENT_READ_ERROR")
        self.script_path = script_path
        self.error_detail = error_detail
