"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    model_config = ConfigDict(extra="allow")

    github_remote: str = "origin"
    github_host: str = "github.com"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None

class UserConfig(BaseModel):
    """User configuration."""
    model_config = ConfigDict(extra="allow")

    github_token: Optional[str] = None
    log_git_commands: bool = True
    draft_by_default: bool = True  # Default answer of the "is this PR a draft?" prompt

class PystConfig(BaseModel):
    """Full pyst configuration."""
    model_config = ConfigDict(extra="allow")

    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
