"""
rem

짧은 스크립트 식별자(`alias@ref:path`, `git@host:user/repo@ref:path`)를
저장소에 있는 스크립트 내용으로 해석합니다.
"""

__version__ = "0.1.0"
