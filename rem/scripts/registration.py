"""
저장소 등록 모듈

호스트 URL과 인증 정보로 제공자별 프로젝트 식별자를 확인하고,
설정에 저장할 RegisteredRepo를 만듭니다.
"""

from typing import Optional
from urllib.parse import quote, urlparse

import aiohttp

from ..config.settings import get_settings
from ..exceptions import ConfigurationException, ContentDecodeException, ScriptFetchException, UsernameRequiresCredentialException
from ..models.base import RegisteredRepo
from ..models.credentials import Credential, credential_to_fields
from ..models.enums import ProviderType
from ..utils.helpers import mask_secrets
from ..utils.logging import get_logger
from .credentials import resolve_credential
from .repository import create_session, github_auth_options, gitlab_headers, raise_for_status, read_json

logger = get_logger(__name__)


def project_path(uri: str) -> str:
    """
    URL에서 호스트 뒤의 경로 추출

    Args:
        uri: 저장소 URL (예: https://github.com/owner/repo.git)

    Returns:
        "owner/repo" 형태의 경로

    Raises:
        ConfigurationException: 경로가 비어 있을 때
    """
    parsed = urlparse(uri)
    if parsed.netloc:
        path = parsed.path
    elif "@" in uri.split(":", 1)[0] and ":" in uri:
        # user@host:owner/repo
        path = uri.split(":", 1)[1]
    else:
        path = uri
    path = path.strip('/').removesuffix('.git').strip('/')

    if not path:
        raise ConfigurationException("uri", f"저장소 경로가 없습니다: {uri}")
    return path


async def fetch_project(
    provider: ProviderType,
    uri: str,
    username: Optional[str] = None,
    credential: Optional[Credential] = None,
    settings=None,
    session: Optional[aiohttp.ClientSession] = None
) -> RegisteredRepo:
    """
    저장소 등록 정보 생성

    Args:
        provider: 저장소 제공자
        uri: 저장소 URL
        username: 사용자 이름 (선택사항)
        credential: 비밀번호 또는 토큰 (선택사항)
        settings: 시스템 설정 (None이면 기본 설정 사용)
        session: HTTP 세션 (None이면 새로 생성 후 정리)

    Returns:
        저장할 RegisteredRepo

    Raises:
        UsernameRequiresCredentialException: 인증 정보 없이 사용자 이름만 있을 때
        RemoteApiException: 원격 API가 2xx 이외의 응답을 반환했을 때
    """
    if username and credential is None:
        raise UsernameRequiresCredentialException(username)

    if settings is None:
        settings = get_settings()

    if provider == ProviderType.GIT:
        if credential is not None or username:
            raise ConfigurationException("password", "git 저장소는 인증 정보를 저장하지 않습니다 (URL 또는 ssh 설정을 사용하세요)")
        return RegisteredRepo(provider=provider, uri=uri)

    owns_session = session is None
    session = session or create_session(settings)
    try:
        if provider == ProviderType.GITHUB:
            return await _fetch_github_project(settings, session, uri, username, credential)
        elif provider == ProviderType.GITLAB:
            return await _fetch_gitlab_project(settings, session, uri, username, credential)
        else:
            raise ConfigurationException("provider", f"지원하지 않는 저장소 타입: {provider}")
    except aiohttp.ClientError as e:
        logger.error(f"저장소 확인 요청 오류: {e}")
        raise ScriptFetchException(f"저장소 확인 요청 오류: {e}", "NETWORK_ERROR") from e
    finally:
        if owns_session:
            await session.close()


async def _fetch_github_project(settings, session, uri, username, credential) -> RegisteredRepo:
    project_id = project_path(uri)
    headers, auth = github_auth_options(username, resolve_credential(credential))
    repo_url = f"{settings.github_api_url.rstrip('/')}/repos/{project_id}"

    async with session.get(repo_url, headers=headers, auth=auth) as response:
        await raise_for_status(ProviderType.GITHUB, response)

    password, password_env = credential_to_fields(credential)
    logger.info(f"GitHub 저장소 확인 완료: {project_id}")
    return RegisteredRepo(
        provider=ProviderType.GITHUB,
        uri=project_id,
        username=username,
        password=password,
        password_env=password_env,
    )


async def _fetch_gitlab_project(settings, session, uri, username, credential) -> RegisteredRepo:
    if username:
        logger.warning(f"GitLab은 사용자 이름을 사용하지 않습니다. 무시합니다: {username}")

    encoded = quote(project_path(uri), safe="")
    project_url = f"{settings.gitlab_api_url.rstrip('/')}/projects/{encoded}"

    async with session.get(project_url, headers=gitlab_headers(resolve_credential(credential))) as response:
        await raise_for_status(ProviderType.GITLAB, response)
        data = await read_json(response)

    project_id = data.get("id") if isinstance(data, dict) else None
    if project_id is None:
        raise ContentDecodeException(f"응답에 프로젝트 id가 없습니다: {mask_secrets(uri)}")

    password, password_env = credential_to_fields(credential)
    logger.info(f"GitLab 저장소 확인 완료: {project_path(uri)} -> {project_id}")
    return RegisteredRepo(
        provider=ProviderType.GITLAB,
        uri=str(project_id),
        password=password,
        password_env=password_env,
    )
