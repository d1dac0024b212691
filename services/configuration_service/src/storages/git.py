import asyncio
import os
import shutil
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from shared.common_utils.exceptions import RemoteConfigurationError, StoreCycleError
from shared.common_utils.logger import logger
from .base import LocalTreeStore, OnChange

COMMIT_IDENTITY = ("-c", "user.name=Configuration Service", "-c", "user.email=configuration-service@localhost")


class GitCommandError(RemoteConfigurationError):
    pass


class GitStore(LocalTreeStore):
    """
    A local mirror of a remote git repository, polled at a fixed interval.

    Each cycle fetches, diffs HEAD against the upstream tracking branch and, when
    something changed, merges upstream into HEAD. The fetch/diff/merge step runs
    under its own hard timeout; a failed or timed-out cycle is logged and the next
    one starts on schedule.
    """

    name = "Git"

    def __init__(
        self,
        repository_url: str,
        local_path: str,
        branch: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        polling_interval: float = 60.0,
        fetch_timeout: float = 60.0,
        search_pattern: Optional[str] = "*",
        include_subdirectories: bool = True,
    ):
        if not local_path or not local_path.strip():
            raise ValueError("local_path cannot be None or empty.")
        if not repository_url or not repository_url.strip():
            raise ValueError("repository_url cannot be None or empty.")

        super().__init__(local_path, search_pattern, include_subdirectories)
        self.repository_url = repository_url
        self.branch = branch
        self.username = username
        self.password = password
        self.polling_interval = polling_interval
        self.fetch_timeout = fetch_timeout

    def _authenticated_url(self) -> str:
        if self.username is None or self.password is None:
            return self.repository_url
        parts = urlsplit(self.repository_url)
        if parts.scheme not in ("http", "https"):
            return self.repository_url
        credentials = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}"
        host = parts.netloc.rsplit("@", 1)[-1]
        return urlunsplit((parts.scheme, f"{credentials}@{host}", parts.path, parts.query, parts.fragment))

    def _redact(self, text: str) -> str:
        if self.password:
            text = text.replace(quote(self.password, safe=""), "***").replace(self.password, "***")
        return text

    async def _run_git(self, *args: str, in_repository: bool = True) -> str:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(self.root) if in_repository else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # a hung fetch is abandoned, not awaited
            if process.returncode is None:
                process.kill()
            raise

        if process.returncode != 0:
            command = next((arg for arg in args if not arg.startswith("-") and "=" not in arg), "git")
            message = self._redact(stderr.decode("utf-8", errors="replace").strip())
            raise GitCommandError(f"git {command} exited with code {process.returncode}: {message}")
        return stdout.decode("utf-8", errors="replace")

    async def _describe_head(self) -> str:
        return (await self._run_git("log", "-1", "--format=[%h] '%s'")).strip()

    async def initialize(self) -> None:
        logger.info(
            f"Initializing {self.name} storage with options "
            f"{{repository_url: {self.repository_url}, local_path: {self.root}, branch: {self.branch}, "
            f"polling_interval: {self.polling_interval}, search_pattern: {self.search_pattern}}}."
        )

        if self.root.exists():
            logger.info(f"A local repository already exists at {self.root}. Deleting directory.")
            await asyncio.to_thread(shutil.rmtree, self.root)

        logger.info(f"Creating directory {self.root}.")
        self.root.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning git repository {self.repository_url} to {self.root}.")
        clone_args = ["clone"]
        if self.branch:
            clone_args += ["--branch", self.branch]
        await self._run_git(*clone_args, self._authenticated_url(), str(self.root), in_repository=False)

        logger.info(f"Repository cloned to {self.root}. Current HEAD is {await self._describe_head()}.")

    async def list_paths(self) -> List[str]:
        logger.info(f"Listing files in repository at {self.root}.")
        index_output = await self._run_git("ls-files", "-z")
        tracked = {path for path in index_output.split("\0") if path}

        local_files = await asyncio.to_thread(self._enumerate_files)
        files = [path for path in local_files if path in tracked]

        logger.info(f"{len(files)} files found.")
        return files

    async def _upstream(self) -> str:
        return (await self._run_git("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")).strip()

    async def _fetch(self) -> None:
        logger.info(f"Fetching from remotes of {self.root}.")
        await self._run_git("fetch", "--all", "--prune")

    async def _recover_interrupted_merge(self) -> None:
        """Clear what a merge cut short by the cycle timeout leaves behind."""
        git_dir = self.root / ".git"
        index_lock = git_dir / "index.lock"
        if index_lock.exists():
            logger.warning(f"Removing stale {index_lock}.")
            index_lock.unlink()
        if (git_dir / "MERGE_HEAD").exists():
            logger.warning(f"Aborting interrupted merge in {self.root}.")
            await self._run_git("merge", "--abort")

    async def _list_changed_files(self) -> List[str]:
        await self._recover_interrupted_merge()
        await self._fetch()

        upstream = await self._upstream()
        logger.info(f"Checking for remote changes on {upstream}.")

        diff_output = await self._run_git("diff", "--name-status", "--no-renames", "-z", "HEAD", upstream)
        tokens = [token for token in diff_output.split("\0") if token]

        changed_files: List[str] = []
        for status, path in zip(tokens[::2], tokens[1::2]):
            if status.startswith("D"):
                logger.info(f"File {path} no longer exists.")
            else:
                logger.info(f"File {path} changed.")
                changed_files.append(path)

        if not changed_files:
            logger.info("No tree entry changes were detected.")
            return []

        await self._merge(upstream)

        changed = set(changed_files)
        filtered = [path for path in await self.list_paths() if path in changed]
        logger.info(f"{len(filtered)} files changed.")
        return filtered

    async def _merge(self, upstream: str) -> None:
        logger.info(f"Merging {upstream} into local repository. Current HEAD is {await self._describe_head()}.")
        try:
            await self._run_git(*COMMIT_IDENTITY, "merge", "--no-edit", upstream)
        except GitCommandError:
            try:
                await self._run_git("merge", "--abort")
            except GitCommandError as abort_error:
                logger.warning(f"Could not abort failed merge: {abort_error}")
            raise
        logger.info(f"Merge completed. New HEAD is {await self._describe_head()}.")

    async def _run_cycle(self) -> List[str]:
        try:
            return await asyncio.wait_for(self._list_changed_files(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise StoreCycleError(
                f"Attempting to list changed files timed out after {self.fetch_timeout} seconds."
            ) from e
        except (GitCommandError, OSError) as e:
            raise StoreCycleError(f"Polling for changes failed: {e}") from e

    async def watch(self, on_change: OnChange, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                files = await self._run_cycle()
                if files:
                    await on_change(files)
            except StoreCycleError as e:
                logger.error(f"Watch cycle skipped: {e}")
            except Exception as e:
                logger.error(f"An unhandled exception occurred while attempting to poll for changes: {e}", exc_info=True)

            if stop_event.is_set():
                break

            next_poll = datetime.now() + timedelta(seconds=self.polling_interval)
            logger.info(
                f"Next polling period will begin in {self.polling_interval}s at {next_poll.isoformat(timespec='seconds')}."
            )
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.polling_interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Stopped polling {self.repository_url}.")
