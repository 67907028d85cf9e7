"""
Git object reader.

Supplies the refs of a repository and the files reachable from one ref.
Repositories live under ``<git_data_dir>/<organization>/<project>/<repository>.git``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pygit2

from gitss.core.errors import NotFoundError
from gitss.core.metadata import RefKind

logger = logging.getLogger(__name__)

# Same heuristic as git: a NUL byte in the first 8000 bytes means binary
_BINARY_SNIFF_BYTES = 8000


@dataclass
class GitFile:
    """One blob reachable from a ref."""

    blob: str
    path: str
    content: str
    size: int
    encoding: str


def decode_blob(data: bytes) -> tuple[str, str] | None:
    """
    Decode blob bytes as text.

    Returns:
        (content, encoding), or None when the blob is binary
    """
    if b"\x00" in data[:_BINARY_SNIFF_BYTES]:
        return None
    try:
        return data.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return data.decode("latin-1"), "latin-1"


class GitRepoReaderInterface(ABC):
    """Abstract interface for reading git repositories."""

    @abstractmethod
    def list_organizations(self) -> list[str]:
        """Names of every organization."""
        pass

    @abstractmethod
    def list_projects(self, organization: str) -> list[str]:
        """Project names of an organization."""
        pass

    @abstractmethod
    def list_repositories(self, organization: str, project: str) -> list[str]:
        """Repository names of a project."""
        pass

    @abstractmethod
    def list_refs(self, organization: str, project: str, repository: str) -> dict[RefKind, list[str]]:
        """Branch and tag names of a repository."""
        pass

    @abstractmethod
    def iter_files(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
    ) -> Iterator[GitFile]:
        """Yield every text file reachable from a ref."""
        pass


class PygitRepoReader(GitRepoReaderInterface):
    """pygit2-backed reader over a directory of bare repositories."""

    def __init__(self, git_data_dir: Path | str):
        self._git_data_dir = Path(git_data_dir)

    @staticmethod
    def _check_names(*names: str) -> None:
        if any(not name or name in (".", "..") or "/" in name for name in names):
            raise NotFoundError(f"Invalid name: {'/'.join(names)}")

    def repository_path(self, organization: str, project: str, repository: str) -> Path:
        self._check_names(organization, project, repository)
        return self._git_data_dir / organization / project / f"{repository}.git"

    def _subdirectories(self, *names: str) -> list[Path]:
        """Sorted child directories of git_data_dir/names..., hidden entries skipped."""
        self._check_names(*names)
        path = self._git_data_dir.joinpath(*names)
        if not path.is_dir():
            raise NotFoundError(f"No such directory: {path}")
        return sorted(p for p in path.iterdir() if p.is_dir() and not p.name.startswith("."))

    def list_organizations(self) -> list[str]:
        if not self._git_data_dir.is_dir():
            return []
        return [p.name for p in self._subdirectories()]

    def list_projects(self, organization: str) -> list[str]:
        return [p.name for p in self._subdirectories(organization)]

    def list_repositories(self, organization: str, project: str) -> list[str]:
        return [
            p.name[: -len(".git")]
            for p in self._subdirectories(organization, project)
            if p.name.endswith(".git")
        ]

    def _open(self, organization: str, project: str, repository: str) -> pygit2.Repository:
        path = self.repository_path(organization, project, repository)
        try:
            return pygit2.Repository(str(path))
        except (KeyError, pygit2.GitError) as e:
            raise NotFoundError(f"Not a git repository: {path}") from e

    def list_refs(self, organization: str, project: str, repository: str) -> dict[RefKind, list[str]]:
        repo = self._open(organization, project, repository)
        tags = sorted(
            name[len("refs/tags/"):] for name in repo.references if name.startswith("refs/tags/")
        )
        return {
            RefKind.BRANCH: sorted(repo.branches.local),
            RefKind.TAG: tags,
        }

    def iter_files(
        self,
        organization: str,
        project: str,
        repository: str,
        kind: RefKind,
        name: str,
    ) -> Iterator[GitFile]:
        repo = self._open(organization, project, repository)
        prefix = "refs/heads/" if kind == RefKind.BRANCH else "refs/tags/"
        try:
            commit = repo.revparse_single(prefix + name).peel(pygit2.Commit)
        except (KeyError, pygit2.GitError) as e:
            raise NotFoundError(f"Unknown {kind.value} '{name}' in {organization}/{project}/{repository}") from e

        yield from self._walk_tree(repo, commit.tree, "")

    def _walk_tree(self, repo: pygit2.Repository, tree: pygit2.Tree, prefix: str) -> Iterator[GitFile]:
        for entry in tree:
            path = f"{prefix}/{entry.name}"
            if entry.type_str == "tree":
                yield from self._walk_tree(repo, repo.get(entry.id), path)
            elif entry.type_str == "blob":
                blob = repo.get(entry.id)
                decoded = decode_blob(blob.data)
                if decoded is None:
                    logger.debug(f"Skipping binary blob: {path}")
                    continue
                content, encoding = decoded
                yield GitFile(
                    blob=str(entry.id),
                    path=path,
                    content=content,
                    size=blob.size,
                    encoding=encoding,
                )
