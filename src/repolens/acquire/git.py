"""Shallow clone of a remote repository via pygit2."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import pygit2
import structlog

from repolens.core.errors import AcquisitionError

if TYPE_CHECKING:
    from pygit2.enums import CredentialType

logger = structlog.get_logger()

_OWNER_NAME = r"/(?P<owner>[^/\s]+)/(?P<name>[^/\s]+?)(?:\.git)?/?$"
_HTTPS_RE = re.compile(r"^https?://(?P<host>[^/\s]+)" + _OWNER_NAME)
_SCP_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):" + _OWNER_NAME[1:])
_SSH_RE = re.compile(r"^ssh://(?:[\w.-]+@)?(?P<host>[\w.-]+)(?::\d+)?" + _OWNER_NAME)


@dataclass(frozen=True, slots=True)
class RemoteRef:
    """A parsed remote repository location."""

    host: str
    owner: str
    name: str
    url: str  # as given; passed to the clone unchanged

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_remote_url(url: str) -> RemoteRef:
    """Parse https, ssh:// and scp-style (git@host:owner/repo.git) URLs.

    Raises:
        AcquisitionError: If the URL is not a recognizable repository URL.
    """
    candidate = url.strip()
    for pattern in (_HTTPS_RE, _SSH_RE, _SCP_RE):
        match = pattern.match(candidate)
        if match:
            return RemoteRef(
                host=match.group("host"),
                owner=match.group("owner"),
                name=match.group("name"),
                url=candidate,
            )
    raise AcquisitionError.invalid_url(url)


def looks_like_remote(target: str) -> bool:
    try:
        parse_remote_url(target)
    except AcquisitionError:
        return False
    return True


class CloneCallbacks(pygit2.RemoteCallbacks):
    """
    RemoteCallbacks that uses system credentials.

    - SSH via the SSH agent
    - HTTPS via `git credential fill` when a helper is configured
    """

    def credentials(  # type: ignore[override]
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> pygit2.Username | pygit2.UserPass | pygit2.Keypair | None:
        if allowed_types & pygit2.enums.CredentialType.SSH_KEY:
            return pygit2.KeypairFromAgent(username_from_url or "git")

        if allowed_types & pygit2.enums.CredentialType.USERPASS_PLAINTEXT:
            creds = _query_credential_helper(url)
            if creds:
                return pygit2.UserPass(creds["username"], creds["password"])

        return None


def _query_credential_helper(url: str) -> dict[str, str] | None:
    parsed = urlparse(url)
    input_lines = [f"protocol={parsed.scheme}", f"host={parsed.hostname or parsed.netloc}"]
    if parsed.path:
        input_lines.append(f"path={parsed.path.lstrip('/')}")
    input_lines.append("")

    try:
        result = subprocess.run(
            ["git", "credential", "fill"],
            input="\n".join(input_lines),
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError):
        # No git binary or helper; anonymous clone still works for public remotes
        return None
    if result.returncode != 0:
        return None

    creds: dict[str, str] = {}
    for line in result.stdout.strip().split("\n"):
        if "=" in line:
            key, value = line.split("=", 1)
            creds[key] = value
    if "username" in creds and "password" in creds:
        return creds
    return None


@contextmanager
def _guard(url: str) -> Iterator[None]:
    """Translate pygit2 failures into AcquisitionError."""
    try:
        yield
    except pygit2.GitError as e:
        raise AcquisitionError.clone_failed(url, str(e)) from e
    except (KeyError, ValueError) as e:
        # pygit2 raises these for a missing checkout branch
        raise AcquisitionError.clone_failed(url, str(e)) from e


def clone(url: str, dest: Path, branch: str | None = None, depth: int = 1) -> Path:
    """Shallow-clone url into dest. dest must not exist.

    Raises:
        AcquisitionError: If the URL is invalid or the clone fails.
    """
    ref = parse_remote_url(url)
    log = logger.bind(remote=ref.full_name, branch=branch)
    log.info("clone_started", dest=str(dest))
    with _guard(url):
        pygit2.clone_repository(
            ref.url,
            str(dest),
            depth=depth,
            checkout_branch=branch,
            callbacks=CloneCallbacks(),
        )
    log.info("clone_completed", dest=str(dest))
    return dest
