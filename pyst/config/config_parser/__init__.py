"""Config parser logic."""

from pathlib import Path
from typing import Dict, Any, Optional, Tuple
import logging
import yaml

from ...errors import DecodingError, StError
from ...git import parse_remote_url
from ...typing import GitInterface

# Get module logger
logger = logging.getLogger(__name__)

RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

REPO_CONFIG_FILE_NAME = ".pyst.yaml"
USER_CONFIG_FILE_NAME = ".pyst.yml"

def internal_config_file_path() -> str:
    """Get path to the user config file."""
    return str(Path.home() / USER_CONFIG_FILE_NAME)

def _load_yaml_file(path: Path) -> Optional[Dict[str, Any]]:
    """Load a YAML mapping from `path`, returning None if the file does not exist."""
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except yaml.YAMLError as e:
        raise DecodingError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodingError(f"Expected a mapping at the top of {path}")
    return data

def _merge_sections(config: Config, loaded: Dict[str, Any], sections: Tuple[str, ...]) -> None:
    for section in sections:
        values = loaded.get(section)
        if isinstance(values, dict):
            config[section].update(values)

def parse_config(git_cmd: GitInterface, user_config_path: Optional[str] = None) -> Config:
    """Parse config from the user config file and the repository config file.

    Repository settings win over user settings. The GitHub owner and repository name
    are derived from the configured remote's URL when they are not set explicitly.
    """
    config: Config = {
        'repo': {
            'github_remote': 'origin',
            'github_host': 'github.com',
        },
        'user': {
            'log_git_commands': True,
            'draft_by_default': True,
        },
    }

    user_path = Path(user_config_path or internal_config_file_path())
    user_config = _load_yaml_file(user_path)
    if user_config is None:
        logger.debug(f"No user config at {user_path}, using defaults")
    else:
        logger.debug(f"Loaded user config from {user_path}")
        _merge_sections(config, user_config, ('repo', 'user'))

    repo_path = git_cmd.git_dir.parent / REPO_CONFIG_FILE_NAME
    repo_config = _load_yaml_file(repo_path)
    if repo_config is None:
        logger.debug(f"No {REPO_CONFIG_FILE_NAME} found, using defaults")
    else:
        logger.info(f"Found {REPO_CONFIG_FILE_NAME}, loading...")
        _merge_sections(config, repo_config, ('repo', 'user'))

    if not config['repo'].get('github_repo_owner') or not config['repo'].get('github_repo_name'):
        remote = config['repo']['github_remote']
        try:
            owner, name = parse_remote_url(git_cmd.remote_url(remote))
        except StError as e:
            # Local-only commands work without a GitHub remote
            logger.debug(f"Could not derive GitHub repository from remote `{remote}`: {e}")
        else:
            if not config['repo'].get('github_repo_owner'):
                config['repo']['github_repo_owner'] = owner
            if not config['repo'].get('github_repo_name'):
                config['repo']['github_repo_name'] = name

    return config

def save_user_config(values: Dict[str, Any], user_config_path: Optional[str] = None) -> Path:
    """Merge `values` into the `user` section of the user config file and write it back."""
    path = Path(user_config_path or internal_config_file_path())
    existing = _load_yaml_file(path) or {}
    user_section = existing.get('user')
    if not isinstance(user_section, dict):
        user_section = {}
    user_section.update(values)
    existing['user'] = user_section
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(existing, f, default_flow_style=False, sort_keys=True)
    path.chmod(0o600)
    logger.info(f"Wrote user config to {path}")
    return path
