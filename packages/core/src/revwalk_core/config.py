import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "base_candidates": ["main", "master", "develop"],  # probed in order when no base ref is given
    "git_timeout": 30,  # seconds per git invocation
    "notes_ref": None,  # None = git's default notes ref (refs/notes/commits)
    "state_dir": "revwalk",  # created under the repository's common git directory
}


def load_config(config_path: str = ".revwalk.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .revwalk.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "base_candidates": list(DEFAULT_CONFIG["base_candidates"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["git_timeout"] = float(config["git_timeout"])
    if isinstance(config["base_candidates"], str):
        config["base_candidates"] = [config["base_candidates"]]

    # Default comment author; the worktree name is used when unset.
    config["author"] = os.environ.get("REVWALK_AUTHOR")

    return config


def state_path(common_dir: str, config: dict) -> Path:
    """Directory holding the review database and reviewer worktrees."""
    return Path(common_dir) / config["state_dir"]


def db_path(common_dir: str, config: dict) -> Path:
    return state_path(common_dir, config) / "review.db"


def worktree_path(common_dir: str, config: dict, name: str) -> Path:
    return state_path(common_dir, config) / "worktrees" / name
