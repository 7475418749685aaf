"""
git 작업 트리 캐시 테스트 모듈

캐시 항목 재사용, 강제 새로 받기, 실패 처리와 실제 git 저장소 조회를 테스트합니다.
"""

import shutil
from pathlib import Path
from unittest.mock import patch

import git
import pytest

from rem.exceptions import ContentReadException, GitCommandFailedException
from rem.scripts.cache_manager import GitCache

REPO_URL = "git@github.com:user/repo"


@pytest.fixture
def cache(settings):
    return GitCache(settings)


class FakeGit:
    """git 명령을 기록하고 작업 트리를 흉내내는 대체 실행기"""

    def __init__(self, content: bytes = b"echo hi\n"):
        self.calls = []
        self.content = content
        self.dirty = False
        self.fail_on = None
        self.checked_out = set()

    def __call__(self, cwd: Path, *args: str) -> str:
        self.calls.append(args)

        if args[0] == self.fail_on:
            raise GitCommandFailedException(f"git {' '.join(args)}", "fatal: couldn't find remote ref\n")

        if args[0] == "init":
            (cwd / ".git").mkdir()
            self.checked_out.discard(cwd)
        elif args[0] == "checkout":
            (cwd / "hello.bash").write_bytes(self.content)
            self.checked_out.add(cwd)
        elif args[0] == "rev-parse" and cwd not in self.checked_out:
            raise GitCommandFailedException("git rev-parse --verify -q HEAD", "")
        elif args[0] == "diff" and self.dirty:
            raise GitCommandFailedException("git diff --quiet", "")

        return ""

    @property
    def commands(self):
        return [call[0] for call in self.calls]


CHECKOUT_SEQUENCE = ["init", "remote", "fetch", "checkout"]
REUSE_CHECK = ["rev-parse", "diff"]


class TestGitCachePaths:
    """캐시 경로 테스트"""

    def test_ref_dir_is_deterministic(self, cache, settings):
        ref_dir = cache.get_ref_dir(REPO_URL, "main")

        assert ref_dir == cache.get_ref_dir(REPO_URL, "main")
        assert ref_dir.parent == settings.git_cache_root
        assert ref_dir.name == "git@github.com_user_repo@main"

    def test_ref_dir_per_ref(self, cache):
        assert cache.get_ref_dir(REPO_URL, "main") != cache.get_ref_dir(REPO_URL, "v1.0")

    def test_ref_with_slash(self, cache):
        """ref의 '/'는 디렉토리를 만들지 않음"""
        ref_dir = cache.get_ref_dir(REPO_URL, "feature/x")

        assert ref_dir.parent == cache.cache_root
        assert ref_dir.name.endswith("@feature_x")


class TestGitCacheFetch:
    """캐시 조회 테스트"""

    @pytest.mark.asyncio
    async def test_first_fetch_checks_out(self, cache):
        fake_git = FakeGit()

        with patch.object(cache, "_run_git", side_effect=fake_git):
            content = await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert content == "echo hi\n"
        assert fake_git.commands == CHECKOUT_SEQUENCE
        assert fake_git.calls[1] == ("remote", "add", "origin", REPO_URL)
        assert fake_git.calls[2] == ("fetch", "--depth", "1", "origin", "main")
        assert fake_git.calls[3] == ("checkout", "FETCH_HEAD")

    @pytest.mark.asyncio
    async def test_clean_entry_is_reused(self, cache):
        """깨끗한 캐시 항목은 다시 받지 않음"""
        fake_git = FakeGit()

        with patch.object(cache, "_run_git", side_effect=fake_git):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")
            content = await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert content == "echo hi\n"
        assert fake_git.commands == CHECKOUT_SEQUENCE + REUSE_CHECK

    @pytest.mark.asyncio
    async def test_dirty_entry_is_replaced(self, cache):
        """변경된 캐시 항목은 삭제 후 다시 받음"""
        fake_git = FakeGit()

        with patch.object(cache, "_run_git", side_effect=fake_git):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")

            ref_dir = cache.get_ref_dir(REPO_URL, "main")
            (ref_dir / "hello.bash").write_text("echo modified\n")
            (ref_dir / "leftover.txt").write_text("x")
            fake_git.dirty = True

            content = await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert content == "echo hi\n"
        assert not (ref_dir / "leftover.txt").exists()
        assert fake_git.commands == CHECKOUT_SEQUENCE + REUSE_CHECK + CHECKOUT_SEQUENCE

    @pytest.mark.asyncio
    async def test_entry_without_git_dir_is_replaced(self, cache):
        """.git이 없는 디렉토리는 재사용하지 않음"""
        ref_dir = cache.get_ref_dir(REPO_URL, "main")
        ref_dir.mkdir(parents=True)
        (ref_dir / "hello.bash").write_text("stale\n")
        fake_git = FakeGit()

        with patch.object(cache, "_run_git", side_effect=fake_git):
            content = await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert content == "echo hi\n"
        assert fake_git.commands == CHECKOUT_SEQUENCE

    @pytest.mark.asyncio
    async def test_force_fresh(self, cache):
        """강제 새로 받기는 깨끗한 항목도 삭제"""
        fake_git = FakeGit()

        with patch.object(cache, "_run_git", side_effect=fake_git):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")
            ref_dir = cache.get_ref_dir(REPO_URL, "main")
            (ref_dir / "stale.txt").write_text("x")

            await cache.fetch_script(REPO_URL, "main", "hello.bash", force_fresh=True)

        assert not (ref_dir / "stale.txt").exists()
        assert fake_git.commands == CHECKOUT_SEQUENCE + CHECKOUT_SEQUENCE

    @pytest.mark.asyncio
    async def test_fetch_failure_leaves_directory(self, cache):
        """git 실패 시 예외를 그대로 전달하고 디렉토리는 남겨둠"""
        fake_git = FakeGit()
        fake_git.fail_on = "fetch"

        with patch.object(cache, "_run_git", side_effect=fake_git):
            with pytest.raises(GitCommandFailedException) as exc_info:
                await cache.fetch_script(REPO_URL, "nope", "hello.bash")

        assert "couldn't find remote ref" in exc_info.value.stderr
        assert cache.get_ref_dir(REPO_URL, "nope").is_dir()
        assert fake_git.commands == ["init", "remote", "fetch"]

    @pytest.mark.asyncio
    async def test_failed_entry_is_fetched_again(self, cache):
        """fetch가 실패해 커밋이 없는 항목은 재사용하지 않고 다시 받음"""
        fake_git = FakeGit()
        fake_git.fail_on = "fetch"

        with patch.object(cache, "_run_git", side_effect=fake_git):
            with pytest.raises(GitCommandFailedException):
                await cache.fetch_script(REPO_URL, "main", "hello.bash")

            fake_git.fail_on = None
            content = await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert content == "echo hi\n"
        assert fake_git.commands == ["init", "remote", "fetch", "rev-parse"] + CHECKOUT_SEQUENCE


class TestGitCacheRead:
    """작업 트리 읽기 테스트"""

    @pytest.mark.asyncio
    async def test_missing_script(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit()):
            with pytest.raises(ContentReadException):
                await cache.fetch_script(REPO_URL, "main", "missing.bash")

    @pytest.mark.asyncio
    async def test_path_outside_worktree(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit()):
            with pytest.raises(ContentReadException):
                await cache.fetch_script(REPO_URL, "main", "../../outside.bash")

    @pytest.mark.asyncio
    async def test_non_utf8_content(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit(content=b"\xff\xfe\x00")):
            with pytest.raises(ContentReadException) as exc_info:
                await cache.fetch_script(REPO_URL, "main", "hello.bash")

        assert "UTF-8" in str(exc_info.value)


class TestGitCacheMaintenance:
    """캐시 관리 기능 테스트"""

    @pytest.mark.asyncio
    async def test_invalidate_single_ref(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit()):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")
            await cache.fetch_script(REPO_URL, "v1.0", "hello.bash")

        assert await cache.invalidate(REPO_URL, "main") == 1
        assert not cache.get_ref_dir(REPO_URL, "main").exists()
        assert cache.get_ref_dir(REPO_URL, "v1.0").exists()

    @pytest.mark.asyncio
    async def test_invalidate_all_refs(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit()):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")
            await cache.fetch_script(REPO_URL, "v1.0", "hello.bash")
            await cache.fetch_script("https://example.com/other.git", "main", "hello.bash")

        assert await cache.invalidate(REPO_URL) == 2
        assert len(await cache.list_entries()) == 1

    @pytest.mark.asyncio
    async def test_invalidate_empty_cache(self, cache):
        assert await cache.invalidate(REPO_URL) == 0

    @pytest.mark.asyncio
    async def test_cache_stats(self, cache):
        with patch.object(cache, "_run_git", side_effect=FakeGit()):
            await cache.fetch_script(REPO_URL, "main", "hello.bash")
            await cache.fetch_script(REPO_URL, "v1.0", "hello.bash")

        entries = await cache.list_entries()
        stats = await cache.get_cache_stats()

        assert {entry['ref'] for entry in entries} == {"main", "v1.0"}
        assert {entry['repository'] for entry in entries} == {"git@github.com_user_repo"}
        assert stats['entry_count'] == 2
        assert stats['repository_count'] == 1
        assert stats['total_size_bytes'] >= 2 * len(b"echo hi\n")
        assert stats['cache_directory'] == str(cache.cache_root)


@pytest.mark.skipif(shutil.which("git") is None, reason="git 실행 파일이 필요합니다")
class TestGitCacheWithRealRepository:
    """로컬 git 저장소를 이용한 통합 테스트"""

    @pytest.fixture
    def source_repo(self, tmp_path):
        """스크립트 하나가 커밋된 원본 저장소"""
        repo_dir = tmp_path / "source"
        repo = git.Repo.init(repo_dir)
        with repo.config_writer() as config:
            config.set_value("user", "name", "rem test")
            config.set_value("user", "email", "rem@example.com")

        (repo_dir / "hello.bash").write_text("echo hello\n")
        repo.index.add(["hello.bash"])
        repo.index.commit("add hello")
        return repo

    @pytest.mark.asyncio
    async def test_fetch_from_local_repository(self, cache, source_repo):
        url = Path(source_repo.working_tree_dir).as_uri()

        content = await cache.fetch_script(url, "HEAD", "hello.bash")

        assert content == "echo hello\n"
        assert (cache.get_ref_dir(url, "HEAD") / ".git").is_dir()

    @pytest.mark.asyncio
    async def test_reuse_and_refresh(self, cache, source_repo):
        """재사용 중에는 원본 변경이 보이지 않고, 강제 새로 받기로 갱신됨"""
        url = Path(source_repo.working_tree_dir).as_uri()
        branch = source_repo.active_branch.name

        assert await cache.fetch_script(url, branch, "hello.bash") == "echo hello\n"

        (Path(source_repo.working_tree_dir) / "hello.bash").write_text("echo updated\n")
        source_repo.index.add(["hello.bash"])
        source_repo.index.commit("update hello")

        assert await cache.fetch_script(url, branch, "hello.bash") == "echo hello\n"
        assert await cache.fetch_script(url, branch, "hello.bash", force_fresh=True) == "echo updated\n"

    @pytest.mark.asyncio
    async def test_unknown_ref(self, cache, source_repo):
        url = Path(source_repo.working_tree_dir).as_uri()

        with pytest.raises(GitCommandFailedException) as exc_info:
            await cache.fetch_script(url, "no-such-branch", "hello.bash")

        assert "fetch" in exc_info.value.command
        assert exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_ls_remote(self, cache, source_repo):
        url = Path(source_repo.working_tree_dir).as_uri()

        output = await cache.ls_remote(url, "HEAD")

        assert source_repo.head.commit.hexsha in output

    @pytest.mark.asyncio
    async def test_recovers_after_remote_appears(self, cache, tmp_path):
        """원격 저장소가 없어 실패한 뒤, 생긴 다음에는 강제 새로 받기 없이 조회됨"""
        repo_dir = tmp_path / "later"
        url = repo_dir.as_uri()

        with pytest.raises(GitCommandFailedException):
            await cache.fetch_script(url, "HEAD", "hello.bash")

        repo = git.Repo.init(repo_dir)
        with repo.config_writer() as config:
            config.set_value("user", "name", "rem test")
            config.set_value("user", "email", "rem@example.com")
        (repo_dir / "hello.bash").write_text("echo later\n")
        repo.index.add(["hello.bash"])
        repo.index.commit("add hello")

        assert await cache.fetch_script(url, "HEAD", "hello.bash") == "echo later\n"
