"""Config module."""

from typing import Dict, Any
from .models import RepoConfig, UserConfig, PystConfig

class Config(PystConfig):
    """Config object holding repository and user config.

    Built from the parsed config dict produced by `parse_config`.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        repo_config = config.get('repo', {})
        user_config = config.get('user', {})

        super().__init__(
            repo=RepoConfig.model_validate(repo_config),
            user=UserConfig.model_validate(user_config),
        )

def default_config() -> Config:
    """Get default config without parsing git."""
    return Config({
        'repo': {
            'github_remote': 'origin',
            'github_host': 'github.com',
        },
        'user': {},
    })
