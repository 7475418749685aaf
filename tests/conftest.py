"""
공통 테스트 픽스처

aiohttp 세션을 흉내내는 목 객체 생성기를 제공합니다.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from rem.config.settings import Settings


@pytest.fixture
def settings(tmp_path):
    """임시 캐시 디렉토리를 사용하는 설정"""
    return Settings(cache_dir=str(tmp_path / "cache"))


@pytest.fixture
def make_response():
    """HTTP 응답 목 생성기"""
    def _make(status=200, json_data=None, text="", body=b""):
        response = MagicMock()
        response.status = status
        response.json = AsyncMock(return_value=json_data)
        response.text = AsyncMock(return_value=text)
        response.read = AsyncMock(return_value=body)
        return response
    return _make


@pytest.fixture
def make_session():
    """응답을 순서대로 돌려주는 aiohttp 세션 목 생성기"""
    def _make(*responses):
        contexts = []
        for response in responses:
            context = MagicMock()
            context.__aenter__ = AsyncMock(return_value=response)
            context.__aexit__ = AsyncMock(return_value=False)
            contexts.append(context)

        session = MagicMock()
        session.get = MagicMock(side_effect=contexts)
        session.close = AsyncMock()
        return session
    return _make
