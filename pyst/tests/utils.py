"""Shared utilities for pyst tests."""
import subprocess
import logging
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

GitRunner = Callable[..., str]

def make_runner(cwd: Path) -> GitRunner:
    """Build a function running git commands in `cwd` and returning their output."""
    def run(*args: str) -> str:
        logger.debug(f"Running command: git {' '.join(args)}")
        result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
        return result.stdout.strip()
    return run

def configure_identity(git: GitRunner, email: str = "test@example.com", name: str = "Test User") -> None:
    git("config", "user.email", email)
    git("config", "user.name", name)
    git("config", "commit.gpgsign", "false")

def commit_file(git: GitRunner, repo: Path, name: str, content: str, message: str) -> None:
    """Write a file, stage it and commit it."""
    (repo / name).write_text(content)
    git("add", name)
    git("commit", "-m", message)

def init_repo(path: Path) -> GitRunner:
    """Create a repository at `path` with a single commit on `main`."""
    path.mkdir(parents=True, exist_ok=True)
    git = make_runner(path)
    git("init")
    git("checkout", "-b", "main")
    configure_identity(git)
    commit_file(git, path, "README.md", "hello\n", "Initial commit")
    return git
