"""
git 작업 트리 캐시 관리 모듈

(저장소 URL, ref) 쌍마다 하나의 로컬 작업 트리를 유지하고,
깨끗한 트리는 재사용하며 그렇지 않으면 얕은 fetch로 다시 받아옵니다.
"""

import asyncio
import fcntl
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import git

from ..exceptions import ContentReadException, GitCommandFailedException
from ..utils.helpers import directory_size, mask_secrets, sanitize_path_segment
from ..utils.logging import get_logger

logger = get_logger(__name__)

REF_SEPARATOR = "@"
LOCK_SUFFIX = ".lock"


class GitCache:
    """git 작업 트리 캐시 관리자

    캐시 항목은 `{cache_dir}/rem/{sanitize(url)}@{ref}/` 디렉토리입니다.
    항목을 확인하고 다시 받아오는 동안에는 항목별 잠금 파일에 대한
    fcntl 배타 잠금을 잡아 다른 프로세스와의 경합을 막습니다.
    """

    def __init__(self, settings):
        """
        캐시 매니저 초기화

        Args:
            settings: 시스템 설정
        """
        self.settings = settings
        self.logger = logger
        self.cache_root = Path(settings.git_cache_root)

    def get_ref_dir(self, repo_url: str, ref: str) -> Path:
        """캐시 항목 경로 생성 (같은 입력은 항상 같은 경로)"""
        name = f"{sanitize_path_segment(repo_url)}{REF_SEPARATOR}{sanitize_path_segment(ref)}"
        return self.cache_root / name

    def _get_lock_path(self, ref_dir: Path) -> Path:
        return ref_dir.with_name(ref_dir.name + LOCK_SUFFIX)

    @contextmanager
    def _entry_lock(self, ref_dir: Path) -> Iterator[None]:
        """캐시 항목별 프로세스 간 배타 잠금"""
        lock_path = self._get_lock_path(ref_dir)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        # 잠금 파일을 비우지 않도록 append 모드
        with open(lock_path, "a") as lock_fd:
            fcntl.flock(lock_fd.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)

    def _run_git(self, cwd: Path, *args: str) -> str:
        """
        git 명령 실행

        Args:
            cwd: 작업 디렉토리
            *args: git 인자

        Returns:
            표준 출력

        Raises:
            GitCommandFailedException: 종료 코드가 0이 아니거나 git을 실행할 수 없을 때
        """
        command = ["git", *args]
        command_text = mask_secrets(" ".join(command))

        try:
            status, stdout, stderr = git.Git(str(cwd)).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
            )
        except git.exc.GitCommandNotFound as e:
            raise GitCommandFailedException(command_text, str(e)) from e

        if status != 0:
            raise GitCommandFailedException(command_text, stderr)

        self.logger.debug(f"git 명령 완료: {command_text}")
        return stdout

    def _is_clean(self, ref_dir: Path) -> bool:
        """재사용 가능 여부 검사

        어떤 실패든 "재사용 불가"로 취급합니다. 원인은 디버그 로그에만 남깁니다.
        """
        if not ref_dir.is_dir():
            self.logger.debug(f"캐시 항목 없음: {ref_dir}")
            return False

        if not (ref_dir / ".git").exists():
            # 상위 디렉토리의 저장소를 검사하지 않도록
            self.logger.debug(f"git 저장소가 아닌 캐시 항목: {ref_dir}")
            return False

        try:
            # init 이후 fetch가 실패한 항목에는 HEAD 커밋이 없음
            self._run_git(ref_dir, "rev-parse", "--verify", "-q", "HEAD")
            self._run_git(ref_dir, "diff", "--quiet")
        except GitCommandFailedException as e:
            self.logger.debug(f"캐시 항목 재사용 불가: {ref_dir} ({e.command}: {e.stderr.strip() or '0이 아닌 종료 코드'})")
            return False

        return True

    def _checkout(self, ref_dir: Path, repo_url: str, ref: str) -> None:
        """빈 저장소를 만들고 ref 하나만 얕게 받아 체크아웃

        실패하면 진단을 위해 디렉토리를 그대로 남깁니다.
        """
        ref_dir.mkdir(parents=True, exist_ok=True)

        self._run_git(ref_dir, "init")
        self._run_git(ref_dir, "remote", "add", "origin", repo_url)
        self._run_git(ref_dir, "fetch", "--depth", "1", "origin", ref)
        self._run_git(ref_dir, "checkout", "FETCH_HEAD")

        self.logger.info(f"저장소 체크아웃 완료: {mask_secrets(repo_url)}@{ref}")

    def _prepare_entry(self, repo_url: str, ref: str, force_fresh: bool) -> Path:
        """잠금을 잡은 상태에서 캐시 항목을 재사용하거나 다시 받아옴"""
        ref_dir = self.get_ref_dir(repo_url, ref)

        with self._entry_lock(ref_dir):
            if force_fresh and ref_dir.exists():
                self.logger.info(f"강제 새로 받기: 캐시 항목 삭제 {ref_dir}")
                shutil.rmtree(ref_dir)

            if self._is_clean(ref_dir):
                self.logger.debug(f"캐시 항목 재사용: {ref_dir}")
                return ref_dir

            if ref_dir.exists():
                self.logger.info(f"변경된 캐시 항목 삭제 후 다시 받기: {ref_dir}")
                shutil.rmtree(ref_dir)

            self._checkout(ref_dir, repo_url, ref)

        return ref_dir

    def _read_script(self, ref_dir: Path, script_path: str) -> str:
        """체크아웃된 작업 트리에서 스크립트를 UTF-8 텍스트로 읽음"""
        root = ref_dir.resolve()
        target = (ref_dir / script_path).resolve()

        try:
            target.relative_to(root)
        except ValueError:
            raise ContentReadException(script_path, "작업 트리 밖을 가리키는 경로입니다")

        try:
            data = target.read_bytes()
        except FileNotFoundError:
            raise ContentReadException(script_path, "파일이 존재하지 않습니다")
        except OSError as e:
            raise ContentReadException(script_path, str(e)) from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ContentReadException(script_path, f"UTF-8 텍스트가 아닙니다: {e}") from e

    async def fetch_script(self, repo_url: str, ref: str, script_path: str, force_fresh: bool = False) -> str:
        """
        git 저장소에서 스크립트 내용 가져오기 (캐시 우선)

        Args:
            repo_url: git 저장소 URL
            ref: git ref
            script_path: 저장소 내부 스크립트 경로
            force_fresh: 캐시 항목을 지우고 새로 받을지 여부

        Returns:
            스크립트 내용

        Raises:
            GitCommandFailedException: git 명령 실패 시
            ContentReadException: 스크립트를 읽을 수 없을 때
        """
        ref_dir = await asyncio.to_thread(self._prepare_entry, repo_url, ref, force_fresh)
        content = await asyncio.to_thread(self._read_script, ref_dir, script_path)

        self.logger.debug(f"스크립트 읽기 완료: {script_path} ({len(content)}자)")
        return content

    async def ls_remote(self, repo_url: str, ref: str) -> str:
        """원격 저장소 접근 가능 여부 확인 (git ls-remote)"""
        self.cache_root.mkdir(parents=True, exist_ok=True)
        return await asyncio.to_thread(self._run_git, self.cache_root, "ls-remote", repo_url, ref)

    async def invalidate(self, repo_url: str, ref: Optional[str] = None) -> int:
        """
        캐시 무효화

        Args:
            repo_url: git 저장소 URL
            ref: 특정 ref (None이면 해당 URL의 모든 ref)

        Returns:
            삭제한 캐시 항목 수
        """
        if ref is not None:
            targets = [self.get_ref_dir(repo_url, ref)]
        elif self.cache_root.is_dir():
            prefix = f"{sanitize_path_segment(repo_url)}{REF_SEPARATOR}"
            targets = [
                entry for entry in self.cache_root.iterdir()
                if entry.is_dir() and entry.name.startswith(prefix)
            ]
        else:
            targets = []

        removed = 0
        for ref_dir in targets:
            with self._entry_lock(ref_dir):
                if ref_dir.exists():
                    shutil.rmtree(ref_dir)
                    removed += 1
                    self.logger.info(f"캐시 무효화: {ref_dir.name}")

        return removed

    async def list_entries(self) -> list[dict]:
        """
        캐시된 작업 트리 목록 조회

        Returns:
            캐시 항목 정보 목록 (최근 수정 순)
        """
        if not self.cache_root.is_dir():
            return []

        entries = []
        for ref_dir in self.cache_root.iterdir():
            if not ref_dir.is_dir():
                continue

            repository, _, ref = ref_dir.name.rpartition(REF_SEPARATOR)
            modified_at = datetime.fromtimestamp(ref_dir.stat().st_mtime)
            entries.append({
                'entry': ref_dir.name,
                'repository': repository,
                'ref': ref,
                'size': directory_size(ref_dir),
                'modified_at': modified_at.isoformat(),
            })

        entries.sort(key=lambda x: x['modified_at'], reverse=True)
        return entries

    async def get_cache_stats(self) -> dict:
        """
        캐시 통계 정보 조회

        Returns:
            캐시 통계 딕셔너리
        """
        entries = await self.list_entries()
        return {
            'total_size_bytes': sum(entry['size'] for entry in entries),
            'entry_count': len(entries),
            'repository_count': len({entry['repository'] for entry in entries}),
            'cache_directory': str(self.cache_root),
        }
