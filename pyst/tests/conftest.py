"""Shared fixtures for pyst tests."""

import io

import pytest

from pyst.config import Config
from pyst.github import GitHubClient
from pyst.remote import RemoteSync
from pyst.stack import StackContext
from pyst.tests.fakes import FakeGit, FakeGithub, ScriptedPrompter
from pyst.tree import StackTree


@pytest.fixture
def config() -> Config:
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_repo_owner': 'acme',
            'github_repo_name': 'widgets',
        },
        'user': {
            'log_git_commands': False,
        },
    })

@pytest.fixture
def git() -> FakeGit:
    return FakeGit()

@pytest.fixture
def tree() -> StackTree:
    return StackTree.new("main")

@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()

@pytest.fixture
def ctx(config: Config, git: FakeGit, tree: StackTree, prompter: ScriptedPrompter) -> StackContext:
    context = StackContext(config, git, tree, prompter)
    context.output = io.StringIO()
    return context

@pytest.fixture
def fake_github(git: FakeGit) -> FakeGithub:
    return FakeGithub("acme/widgets", git.remote_refs)

@pytest.fixture
def remote(ctx: StackContext, config: Config, fake_github: FakeGithub, prompter: ScriptedPrompter) -> RemoteSync:
    return RemoteSync(ctx, GitHubClient(config, fake_github), prompter)
