"""
스크립트 저장소 통합 모듈

git, GitHub, GitLab 저장소에서 스크립트 내용을 가져오는 기능을 제공합니다.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from ..exceptions import ContentDecodeException, RemoteApiException, ScriptFetchException
from ..models.credentials import Credential
from ..models.enums import ProviderType
from ..utils.helpers import mask_secrets
from ..utils.logging import get_logger
from .cache_manager import GitCache
from .credentials import resolve_credential

logger = get_logger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"


def create_session(settings) -> aiohttp.ClientSession:
    """공통 HTTP 세션 생성 (내부 타임아웃 없음)"""
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=None),
        headers={'User-Agent': settings.user_agent}
    )


def is_success(status: int) -> bool:
    return 200 <= status < 300


async def raise_for_status(provider: ProviderType, response: aiohttp.ClientResponse) -> None:
    """2xx가 아니면 상태 코드와 본문을 담아 RemoteApiException 발생"""
    if not is_success(response.status):
        body = await response.text()
        raise RemoteApiException(provider.value, response.status, body)


async def read_json(response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError as e:
        raise ContentDecodeException(f"JSON 응답이 아닙니다: {e}") from e


def decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentDecodeException(f"UTF-8 텍스트가 아닙니다: {e}") from e


def github_auth_options(username: Optional[str], secret: Optional[str]) -> tuple[dict, Optional[aiohttp.BasicAuth]]:
    """GitHub 요청 헤더와 basic auth 구성"""
    headers = {"Accept": GITHUB_ACCEPT}
    if secret is None:
        return headers, None
    if username:
        return headers, aiohttp.BasicAuth(username, secret)
    # 사용자 이름 없는 토큰
    headers["Authorization"] = f"token {secret}"
    return headers, None


def gitlab_headers(secret: Optional[str]) -> dict:
    return {"PRIVATE-TOKEN": secret} if secret is not None else {}


def gitlab_project_ref(project_id: str) -> str:
    """숫자 ID 또는 URL 인코딩된 경로 (이미 인코딩된 값은 그대로)"""
    if "%" in project_id:
        return project_id
    return quote(project_id, safe="")


class RepositoryBase(ABC):
    """저장소 기본 추상 클래스"""

    provider: ProviderType

    def __init__(self, settings, session: Optional[aiohttp.ClientSession] = None):
        """
        저장소 기본 초기화

        Args:
            settings: 시스템 설정
            session: 공유 HTTP 세션 (없으면 필요할 때 생성)
        """
        self.settings = settings
        self.logger = logger
        self.session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """HTTP 세션 반환 (없으면 생성)"""
        if self.session is None:
            self.session = create_session(self.settings)
            self._owns_session = True
        return self.session

    @abstractmethod
    def describe(self) -> str:
        """저장소를 사람이 읽을 수 있는 문자열로 표현"""

    @abstractmethod
    async def fetch_script(self, script_path: str, ref: str, force_fresh: bool = False) -> str:
        """
        스크립트 내용 가져오기 (추상 메서드)

        Args:
            script_path: 저장소 내부 스크립트 경로
            ref: git ref
            force_fresh: 로컬 캐시를 무시하고 새로 받을지 여부

        Returns:
            스크립트 내용
        """

    @abstractmethod
    async def check(self) -> None:
        """저장소 접근 가능 여부 확인 (실패 시 예외 발생)"""

    async def close(self) -> None:
        """세션 정리"""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"{self.provider.value} | {self.describe()}"


class GitRepository(RepositoryBase):
    """git 저장소 클래스 (로컬 작업 트리 캐시 사용)"""

    provider = ProviderType.GIT

    def __init__(self, settings, repository_url: str, cache: Optional[GitCache] = None):
        """
        git 저장소 초기화

        Args:
            settings: 시스템 설정
            repository_url: git 저장소 URL
            cache: git 작업 트리 캐시 (없으면 새로 생성)
        """
        super().__init__(settings)
        self.repository_url = repository_url
        self.cache = cache or GitCache(settings)

    def describe(self) -> str:
        return mask_secrets(self.repository_url)

    async def fetch_script(self, script_path: str, ref: str, force_fresh: bool = False) -> str:
        """git 캐시에서 스크립트 가져오기"""
        return await self.cache.fetch_script(self.repository_url, ref, script_path, force_fresh)

    async def check(self, ref: str = "HEAD") -> None:
        await self.cache.ls_remote(self.repository_url, ref)


class GithubRepository(RepositoryBase):
    """GitHub 저장소 클래스 (contents API)"""

    provider = ProviderType.GITHUB

    def __init__(
        self,
        settings,
        project_id: str,
        username: Optional[str] = None,
        credential: Optional[Credential] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        GitHub 저장소 초기화

        Args:
            settings: 시스템 설정
            project_id: "owner/repo" 형태의 프로젝트 식별자
            username: basic auth 사용자 이름
            credential: 비밀번호 또는 토큰
            session: 공유 HTTP 세션
        """
        super().__init__(settings, session)
        self.project_id = project_id
        self.username = username
        self.credential = credential
        self.api_url = settings.github_api_url.rstrip('/')

    def describe(self) -> str:
        return self.project_id

    def _request_options(self) -> tuple[dict, Optional[aiohttp.BasicAuth]]:
        # 환경 변수 인증 정보는 요청 직전에 해석
        return github_auth_options(self.username, resolve_credential(self.credential))

    async def fetch_script(self, script_path: str, ref: str, force_fresh: bool = False) -> str:
        """
        GitHub에서 스크립트 가져오기

        contents API로 download_url을 받은 뒤, 인증 없이 원본 내용을 내려받습니다.
        """
        session = await self._get_session()
        headers, auth = self._request_options()
        contents_url = f"{self.api_url}/repos/{self.project_id}/contents/{quote(script_path.lstrip('/'))}"

        try:
            async with session.get(contents_url, params={"ref": ref}, headers=headers, auth=auth) as response:
                await raise_for_status(self.provider, response)
                data = await read_json(response)

            download_url = data.get("download_url") if isinstance(data, dict) else None
            if not download_url:
                raise ContentDecodeException(f"응답에 download_url이 없습니다: {script_path} (디렉토리인지 확인하세요)")

            async with session.get(download_url) as response:
                await raise_for_status(self.provider, response)
                body = await response.read()

        except aiohttp.ClientError as e:
            self.logger.error(f"GitHub 요청 오류: {e}")
            raise ScriptFetchException(f"GitHub 요청 오류: {e}", "NETWORK_ERROR") from e

        self.logger.info(f"GitHub 스크립트 다운로드 완료: {self.project_id}/{script_path}@{ref}")
        return decode_utf8(body)

    async def check(self) -> None:
        session = await self._get_session()
        headers, auth = self._request_options()

        try:
            async with session.get(f"{self.api_url}/repos/{self.project_id}", headers=headers, auth=auth) as response:
                await raise_for_status(self.provider, response)
        except aiohttp.ClientError as e:
            raise ScriptFetchException(f"GitHub 요청 오류: {e}", "NETWORK_ERROR") from e


class GitlabRepository(RepositoryBase):
    """GitLab 저장소 클래스 (repository files API)"""

    provider = ProviderType.GITLAB

    def __init__(
        self,
        settings,
        project_id: str,
        credential: Optional[Credential] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        GitLab 저장소 초기화

        Args:
            settings: 시스템 설정
            project_id: 숫자 프로젝트 ID 또는 URL 인코딩된 경로
            credential: PRIVATE-TOKEN 값
            session: 공유 HTTP 세션
        """
        super().__init__(settings, session)
        self.project_id = project_id
        self.credential = credential
        self.api_url = settings.gitlab_api_url.rstrip('/')

    def describe(self) -> str:
        return self.project_id

    def _project_url(self) -> str:
        return f"{self.api_url}/projects/{gitlab_project_ref(self.project_id)}"

    async def fetch_script(self, script_path: str, ref: str, force_fresh: bool = False) -> str:
        """
        GitLab에서 스크립트 가져오기

        응답의 content 필드를 base64, UTF-8 순서로 디코딩합니다.
        """
        session = await self._get_session()
        headers = gitlab_headers(resolve_credential(self.credential))
        file_url = f"{self._project_url()}/repository/files/{quote(script_path.lstrip('/'), safe='')}"

        try:
            async with session.get(file_url, params={"ref": ref}, headers=headers) as response:
                await raise_for_status(self.provider, response)
                data = await read_json(response)
        except aiohttp.ClientError as e:
            self.logger.error(f"GitLab 요청 오류: {e}")
            raise ScriptFetchException(f"GitLab 요청 오류: {e}", "NETWORK_ERROR") from e

        content = self.decode_content(data)
        self.logger.info(f"GitLab 스크립트 다운로드 완료: {self.project_id}/{script_path}@{ref}")
        return content

    @staticmethod
    def decode_content(data: Any) -> str:
        """repository files API 응답의 content 디코딩"""
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise ContentDecodeException("응답에 content 필드가 없습니다")

        encoding = data.get("encoding", "base64")
        if encoding != "base64":
            raise ContentDecodeException(f"지원하지 않는 인코딩입니다: {encoding}")

        try:
            raw = base64.b64decode("".join(data["content"].split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ContentDecodeException(f"base64 디코딩 실패: {e}") from e

        return decode_utf8(raw)

    async def check(self) -> None:
        session = await self._get_session()
        headers = gitlab_headers(resolve_credential(self.credential))

        try:
            async with session.get(self._project_url(), headers=headers) as response:
                await raise_for_status(self.provider, response)
        except aiohttp.ClientError as e:
            raise ScriptFetchException(f"GitLab 요청 오류: {e}", "NETWORK_ERROR") from e
