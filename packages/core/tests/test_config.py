"""Tests for configuration loading."""

from pathlib import Path

from revwalk_core.config import DEFAULT_CONFIG, db_path, load_config, state_path, worktree_path


def test_defaults_applied_when_no_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("REVWALK_AUTHOR", raising=False)
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["base_candidates"] == ["main", "master", "develop"]
    assert config["git_timeout"] == 30.0
    assert config["notes_ref"] is None
    assert config["state_dir"] == "revwalk"
    assert config["author"] is None


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("git_timeout: 5\nnotes_ref: review\n")
    config = load_config(config_path=str(cfg))
    assert config["git_timeout"] == 5.0
    assert config["notes_ref"] == "review"
    assert config["state_dir"] == "revwalk"


def test_base_candidates_loaded(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("base_candidates:\n  - trunk\n  - main\n")
    config = load_config(config_path=str(cfg))
    assert config["base_candidates"] == ["trunk", "main"]


def test_single_base_candidate_string_becomes_list(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("base_candidates: trunk\n")
    config = load_config(config_path=str(cfg))
    assert config["base_candidates"] == ["trunk"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("git_timeout: 5\n")
    config = load_config(config_path=str(cfg), cli_overrides={"git_timeout": 60})
    assert config["git_timeout"] == 60.0


def test_cli_none_override_does_not_clobber_file_value(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("notes_ref: review\n")
    config = load_config(config_path=str(cfg), cli_overrides={"notes_ref": None})
    assert config["notes_ref"] == "review"


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["base_candidates"] == ["main", "master", "develop"]


def test_defaults_not_mutated_between_loads(tmp_path):
    cfg = tmp_path / ".revwalk.yml"
    cfg.write_text("base_candidates: trunk\n")
    load_config(config_path=str(cfg))
    assert DEFAULT_CONFIG["base_candidates"] == ["main", "master", "develop"]


def test_author_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("REVWALK_AUTHOR", "alice")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["author"] == "alice"


def test_state_paths_live_under_common_dir():
    config = dict(DEFAULT_CONFIG)
    assert state_path("/repo/.git", config) == Path("/repo/.git/revwalk")
    assert db_path("/repo/.git", config) == Path("/repo/.git/revwalk/review.db")
    assert worktree_path("/repo/.git", config, "security") == Path("/repo/.git/revwalk/worktrees/security")
