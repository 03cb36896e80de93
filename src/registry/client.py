"""
GitHub-hosted token list registry client.

Proposes a new token by creating a branch off the base branch, committing
tokens/<mint>.json to it and opening a pull request.
"""

import asyncio
import base64
import json
import uuid
from typing import Any

import aiohttp

from core.errors import RegistrySubmissionFailure
from interfaces.core import ProposalHandle, RegistryClient, TokenRecord
from utils.logger import get_logger

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubRegistryClient(RegistryClient):
    """Opens pull requests against a GitHub token list repository."""

    def __init__(
        self,
        token: str | None,
        owner: str = "solflare-wallet",
        repo: str = "utl-aggregator",
        base_branch: str = "main",
        api_url: str = GITHUB_API_URL,
        timeout: float = 15.0,
    ):
        """Initialize the registry client.

        Args:
            token: GitHub access token; submission is skipped when empty
            owner: Repository owner
            repo: Repository name
            base_branch: Branch the pull request targets
            api_url: GitHub REST API base URL
            timeout: Per-request timeout in seconds
        """
        self._token = token
        self.owner = owner
        self.repo = repo
        self.base_branch = base_branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._token)

    @staticmethod
    def branch_name(mint: str) -> str:
        """Branch name unique per submission, even for a repeated mint."""
        return f"add-token-{mint}-{uuid.uuid4().hex[:8]}"

    async def propose_addition(self, record: TokenRecord) -> ProposalHandle | None:
        """Run the branch/commit/pull-request workflow.

        Failures at any step are logged and swallowed.

        Args:
            record: Token data to commit

        Returns:
            Pull request handle, or None if skipped or failed
        """
        if not self.enabled:
            logger.warning("GitHub token not configured, registry submission skipped")
            return None

        try:
            return await self._propose(record)
        except (
            RegistrySubmissionFailure,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            KeyError,
            TypeError,
            ValueError,
        ) as e:
            logger.error(f"Registry submission for {record.mint} failed: {e!s}", exc_info=True)
            return None

    async def _propose(self, record: TokenRecord) -> ProposalHandle:
        branch = self.branch_name(record.mint)
        path = f"tokens/{record.mint}.json"
        repo_path = f"/repos/{self.owner}/{self.repo}"

        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        async with aiohttp.ClientSession(
            headers=headers, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            base = await self._request(
                session, "GET", f"{repo_path}/branches/{self.base_branch}", step="get base branch"
            )
            base_sha = base["commit"]["sha"]

            await self._request(
                session,
                "POST",
                f"{repo_path}/git/refs",
                step="create branch",
                json={"ref": f"refs/heads/{branch}", "sha": base_sha},
            )
            logger.info(f"Created registry branch {branch} at {base_sha}")

            content = json.dumps(record.to_dict(), indent=2).encode("utf-8")
            await self._request(
                session,
                "PUT",
                f"{repo_path}/contents/{path}",
                step="commit token file",
                json={
                    "message": f"Add token {record.name}",
                    "content": base64.b64encode(content).decode("ascii"),
                    "branch": branch,
                },
            )

            pull = await self._request(
                session,
                "POST",
                f"{repo_path}/pulls",
                step="create pull request",
                json={
                    "title": f"Add token: {record.name}",
                    "head": branch,
                    "base": self.base_branch,
                    "body": f"Adding token {record.name} ({record.mint}) to the list.",
                },
            )

        handle = ProposalHandle(
            branch=branch, path=path, number=pull["number"], url=pull["html_url"]
        )
        logger.info(f"Pull request created: {handle.url}")
        return handle

    async def _request(
        self,
        session: aiohttp.ClientSession,
        method: str,
        path: str,
        step: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        async with session.request(method, f"{self.api_url}{path}", **kwargs) as response:
            if response.status >= 400:
                body = await response.text()
                raise RegistrySubmissionFailure(
                    f"GitHub API {step} failed with HTTP {response.status}: {body[:200]}",
                    step=step,
                    status=response.status,
                )
            return await response.json()
