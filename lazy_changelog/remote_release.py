"""Remote release clients.

A client knows how to link commit references for its platform and builds
the deferred task that publishes a release once the final commit is known.
GitHub and GitLab are driven through their CLIs (``gh`` and ``glab``), which
own authentication.
"""

from __future__ import annotations

import re

from .exceptions import RemoteReleaseError
from .git import get_remote_url
from .models import PostReleaseTask, Reference, ReleaseVersion
from .shell import gh, glab

_SSH_URL_RE = re.compile(r"^(?:ssh://)?git@(?P<host>[^:/]+)[:/](?P<path>.+?)(?:\.git)?/?$")
_HTTP_URL_RE = re.compile(r"^https?://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<path>.+?)(?:\.git)?/?$")


def repo_web_url(remote_url: str) -> str | None:
    """Convert a git remote URL to the repository's https URL.

    Examples:
        "git@github.com:org/repo.git" → "https://github.com/org/repo"
        "https://gitlab.com/group/sub/repo.git" → "https://gitlab.com/group/sub/repo"
    """
    for regex in (_SSH_URL_RE, _HTTP_URL_RE):
        match = regex.match(remote_url.strip())
        if match:
            return f"https://{match.group('host')}/{match.group('path')}"
    return None


class RemoteReleaseClient:
    """No remote platform: references render as plain text, no releases."""

    provider_name = ""

    def __init__(self, repo_url: str | None = None) -> None:
        self.repo_url = repo_url

    def format_reference(self, ref: Reference) -> str:
        return ref.value

    def release_exists(self, tag: str) -> bool:
        return False

    def publish_release(
        self, release_version: ReleaseVersion, contents: str, latest_commit: str
    ) -> None:
        raise RemoteReleaseError("No remote release provider is configured")

    def create_post_release_task(
        self, release_version: ReleaseVersion, contents: str, dry_run: bool
    ) -> PostReleaseTask:
        """Bind a release to its version and contents, to run after git is done."""

        def task(latest_commit: str) -> None:
            if dry_run:
                print(
                    f"  Would create {self.provider_name} release {release_version.git_tag} "
                    f"at {latest_commit[:12]}"
                )
                return
            self.publish_release(release_version, contents, latest_commit)
            print(f"  {self.provider_name} release {release_version.git_tag} published")

        task.__qualname__ = f"{self.provider_name} release {release_version.git_tag}"
        return task


class GitHubReleaseClient(RemoteReleaseClient):
    provider_name = "GitHub"

    def format_reference(self, ref: Reference) -> str:
        number = ref.value.lstrip("#")
        path = {"pull-request": "pull", "issue": "issues", "hash": "commit"}[ref.type]
        return f"[{ref.value}]({self.repo_url}/{path}/{number})"

    def release_exists(self, tag: str) -> bool:
        return bool(gh("release", "view", tag, "--json", "tagName", check=False))

    def publish_release(
        self, release_version: ReleaseVersion, contents: str, latest_commit: str
    ) -> None:
        tag = release_version.git_tag
        if self.release_exists(tag):
            gh("release", "edit", tag, "--notes", contents)
            return
        args = ["release", "create", tag, "--title", tag, "--notes", contents]
        args.extend(["--target", latest_commit])
        if release_version.is_prerelease:
            args.append("--prerelease")
        gh(*args)


class GitLabReleaseClient(RemoteReleaseClient):
    provider_name = "GitLab"

    def format_reference(self, ref: Reference) -> str:
        number = ref.value.lstrip("#")
        path = {"pull-request": "-/merge_requests", "issue": "-/issues", "hash": "-/commit"}[
            ref.type
        ]
        return f"[{ref.value}]({self.repo_url}/{path}/{number})"

    def release_exists(self, tag: str) -> bool:
        return bool(glab("release", "view", tag, check=False))

    def publish_release(
        self, release_version: ReleaseVersion, contents: str, latest_commit: str
    ) -> None:
        tag = release_version.git_tag
        if self.release_exists(tag):
            glab("release", "update", tag, "--notes", contents)
            return
        glab("release", "create", tag, "--name", tag, "--notes", contents, "--ref", latest_commit)


CLIENTS: dict[str, type[RemoteReleaseClient]] = {
    "github": GitHubReleaseClient,
    "gitlab": GitLabReleaseClient,
}


def create_remote_release_client(provider: str | bool, remote: str) -> RemoteReleaseClient:
    """Build the client for a scope's create_release setting.

    Without a provider a plain client is returned so references still render.

    Raises:
        RemoteReleaseError: A provider is configured but the git remote has
            no URL the provider can work with.
    """
    remote_url = get_remote_url(remote)
    repo_url = repo_web_url(remote_url) if remote_url else None
    if not provider:
        return RemoteReleaseClient(repo_url)

    client_class = CLIENTS.get(str(provider))
    if client_class is None:
        raise RemoteReleaseError(f"Unknown remote release provider: {provider}")
    if repo_url is None:
        raise RemoteReleaseError(
            f'Unable to create {client_class.provider_name} releases: git remote "{remote}" '
            "has no recognizable repository URL"
        )
    return client_class(repo_url)


class RemoteReleaseProviders:
    """Remote platforms used during one run, for messages like
    "Skipped GitHub/GitLab release creation"."""

    def __init__(self) -> None:
        self.names: list[str] = []

    def add(self, client: RemoteReleaseClient) -> None:
        if client.provider_name and client.provider_name not in self.names:
            self.names.append(client.provider_name)

    @property
    def display_name(self) -> str:
        return "/".join(self.names) or "remote"
