"""Subprocess-backed git commands for the branch panel."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable
from pathlib import Path

from branchdeck.config import DEFAULT_GRAPH_MAX_COMMITS
from branchdeck.errors import CommandError
from branchdeck.panels.models import Item

logger = py_logging.getLogger(__name__)

_LIST_FORMAT = "%(HEAD)%09%(refname:short)%09%(upstream:track,nobracket)"
_TRACK_SYMBOLS = (("ahead ", "↑"), ("behind ", "↓"))


def _failure_message(result: subprocess.CompletedProcess) -> str:
    return (result.stderr or result.stdout or "").strip() or f"git exited with {result.returncode}"


def format_track(raw: str) -> str:
    """Turn ``ahead 2, behind 1`` into ``↑2↓1``; ``gone`` stays as-is."""
    value = raw.strip()
    if not value or value == "gone":
        return value
    parts: list[str] = []
    for chunk in value.split(","):
        chunk = chunk.strip()
        for prefix, symbol in _TRACK_SYMBOLS:
            if chunk.startswith(prefix):
                parts.append(symbol + chunk[len(prefix) :].strip())
    return "".join(parts)


def parse_branch_list(raw: str) -> list[Item]:
    """Parse ``for-each-ref`` output; the checked out branch comes first."""
    current: list[Item] = []
    others: list[Item] = []
    seen: set[str] = set()
    for line in raw.splitlines():
        if not line.strip():
            continue
        head, _, rest = line.partition("\t")
        name, _, track = rest.partition("\t")
        name = name.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        upstream_track = format_track(track)
        label = f"{name} {upstream_track}" if upstream_track else name
        item = Item(
            name=name,
            display_label=label,
            is_current=head.strip() == "*" and not current,
            upstream_track=upstream_track,
        )
        (current if item.is_current else others).append(item)
    return current + others


class GitCommand:
    def __init__(
        self,
        repo_path: str | Path,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        *,
        graph_max_commits: int = DEFAULT_GRAPH_MAX_COMMITS,
    ) -> None:
        self.repo = Path(repo_path)
        self._runner = runner
        self._graph_max_commits = graph_max_commits

    def _run_git(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = ["git", "-C", str(self.repo), *args]
        return self._runner(cmd, capture_output=True, text=True, check=False)

    def _must_run(self, operation: str, args: list[str]) -> str:
        logger.debug("Running git %s repo=%s args=%s", operation, self.repo, args)
        try:
            result = self._run_git(args)
        except OSError as exc:
            logger.error("Failed to start git for %s repo=%s: %s", operation, self.repo, exc)
            raise CommandError(str(exc), hint="Ensure git is installed and on PATH.") from exc
        if result.returncode != 0:
            message = _failure_message(result)
            logger.debug("git %s failed repo=%s stderr=%s", operation, self.repo, message)
            raise CommandError(message)
        return result.stdout

    def checkout(self, name: str, force: bool = False) -> None:
        args = ["checkout", "--force", name] if force else ["checkout", name]
        self._must_run("checkout", args)

    def new_branch(self, name: str) -> None:
        self._must_run("new-branch", ["checkout", "-b", name])

    def delete_branch(self, name: str, force: bool = False) -> None:
        self._must_run("delete-branch", ["branch", "-D" if force else "-d", name])

    def merge(self, name: str) -> None:
        self._must_run("merge", ["merge", "--no-edit", name])

    def fetch_list(self) -> list[Item]:
        raw = self._must_run(
            "list-branches",
            ["for-each-ref", "--sort=-committerdate", f"--format={_LIST_FORMAT}", "refs/heads"],
        )
        items = parse_branch_list(raw)
        logger.debug("Discovered %s local branches repo=%s", len(items), self.repo)
        return items

    def get_branch_graph(self, name: str) -> str:
        return self._must_run(
            "branch-graph",
            [
                "log",
                "--graph",
                "--color",
                "--abbrev-commit",
                "--decorate",
                "--date=relative",
                "--pretty=medium",
                f"-{self._graph_max_commits}",
                name,
                "--",
            ],
        )

    def repo_name(self) -> str:
        return self.repo.resolve().name
