"""Load and persist the stack tree of a repository."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .errors import DecodingError
from .tree import StackTree

logger = logging.getLogger(__name__)

STORE_FILE_NAME = ".pyst_store.yaml"

def store_path(git_dir: Path) -> Path:
    """Path of the serialized stack tree, kept inside the `.git` directory."""
    return git_dir / STORE_FILE_NAME

def load_tree(path: Path) -> Optional[StackTree]:
    """Load a stack tree, returning None if none has been stored yet."""
    if not path.exists():
        return None
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        tree = StackTree.model_validate(data)
    except yaml.YAMLError as e:
        raise DecodingError(f"Corrupt stack store at {path}: {e}") from e
    except ValidationError as e:
        raise DecodingError(f"Invalid stack store at {path}: {e}") from e
    logger.debug(f"Loaded {len(tree.branches)} tracked branches from {path}")
    return tree

def save_tree(path: Path, tree: StackTree) -> None:
    data = tree.model_dump(exclude_none=True)
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
    logger.debug(f"Saved {len(tree.branches)} tracked branches to {path}")
