import json
from pathlib import Path

from projvars.cli.main import main
from projvars.core.config import ProjvarsConfig

MIT_TEXT = (
    "Permission is hereby granted, free of charge, to any person obtaining a copy\n"
    'THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND.\n'
)


def _with_origin(git_repo, url="git@github.com:me/myproj.git") -> Path:
    root = Path(git_repo.working_tree_dir)
    git_repo.create_remote("origin", url)
    (root / "LICENSE").write_text(MIT_TEXT, encoding="utf-8")
    return root


def test_cli_list(capsys, clean_env):
    rc = main(["--list"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "| PROJECT_VERSION | x |" in out
    assert out.count("\n") == 2 + 25


def test_cli_writes_key_value_file(tmp_path: Path, git_repo, clean_env):
    root = _with_origin(git_repo)
    out_file = tmp_path / "project.env"
    rc = main(["-C", str(root), "-o", str(out_file), "--fail"])
    assert rc == 0
    text = out_file.read_text(encoding="utf-8")
    assert 'PROJECT_REPO_WEB_URL="https://github.com/me/myproj"' in text
    assert 'PROJECT_REPO_ISSUES_URL="https://github.com/me/myproj/issues"' in text
    assert 'PROJECT_NAME="myproj"' in text
    assert 'PROJECT_LICENSE="MIT"' in text
    assert 'PROJECT_BUILD_BRANCH="main"' in text


def test_cli_missing_clone_url_fails_unless_not_required(tmp_path: Path, git_repo, capsys, clean_env):
    root = Path(git_repo.working_tree_dir)
    rc = main(["-C", str(root), "--fail", "--dry"])
    assert rc == 1
    err = capsys.readouterr().err
    assert "Error: Missing required properties" in err
    assert "PROJECT_REPO_CLONE_URL" in err

    rc = main(["-C", str(root), "--fail", "--dry", "-N", "PROJECT_REPO_CLONE_URL"])
    assert rc == 0


def test_cli_override_beats_environment(tmp_path: Path, git_repo, clean_env):
    clean_env.setenv("PROJECT_NAME", "from-env")
    clean_env.setenv("PROJECT_VERSION", "9.9.9")
    root = _with_origin(git_repo)
    out_json = tmp_path / "project.json"
    rc = main(["-C", str(root), "-D", "PROJECT_NAME=from-cli", "--json-out", str(out_json), "-O", "none"])
    assert rc == 0
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data["PROJECT_NAME"] == "from-cli"
    assert data["PROJECT_VERSION"] == "9.9.9"


def test_cli_no_env_in_ignores_environment(tmp_path: Path, git_repo, clean_env):
    clean_env.setenv("PROJECT_VERSION", "9.9.9")
    root = _with_origin(git_repo)
    out_json = tmp_path / "project.json"
    rc = main(["-C", str(root), "--no-env-in", "--json-out", str(out_json)])
    assert rc == 0
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data["PROJECT_VERSION"].startswith("g")


def test_cli_variables_file_and_only_required(tmp_path: Path, git_repo, clean_env):
    root = _with_origin(git_repo)
    vars_file = tmp_path / "vars.env"
    vars_file.write_text("PROJECT_VERSION=4.2.0\n", encoding="utf-8")
    out_json = tmp_path / "project.json"
    rc = main(["-C", str(root), "-I", str(vars_file), "--json-out", str(out_json), "-R", "VERSION", "--only-required"])
    assert rc == 0
    assert json.loads(out_json.read_text(encoding="utf-8")) == {"PROJECT_VERSION": "4.2.0"}


def test_cli_show_primary_to_stdout_and_dry_run(tmp_path: Path, git_repo, capsys, clean_env):
    root = _with_origin(git_repo)
    out_file = tmp_path / "project.env"
    rc = main(["-C", str(root), "-s", "--dry", "-o", str(out_file)])
    assert rc == 0
    out = capsys.readouterr().out
    assert "- PROJECT_REPO_WEB_URL: `https://github.com/me/myproj` (derived)" in out
    assert not out_file.exists()


def test_cli_show_all_to_file(tmp_path: Path, git_repo, clean_env):
    root = _with_origin(git_repo)
    report = tmp_path / "report.md"
    rc = main(["-C", str(root), "--show-all-retrieved", str(report), "--dry"])
    assert rc == 0
    text = report.read_text(encoding="utf-8")
    assert text.startswith("| Property | env | git | fs | license | derived |")


def test_cli_key_prefix_and_config_file(tmp_path: Path, git_repo, clean_env):
    root = _with_origin(git_repo)
    out_json = tmp_path / "vars.json"
    cfg = ProjvarsConfig()
    cfg.resolution.repo_path = str(root)
    cfg.resolution.key_prefix = "APP_"
    cfg.output.json_file = str(out_json)
    config_path = tmp_path / "projvars.json"
    cfg.to_json(config_path)

    rc = main(["-c", str(config_path), "-D", "APP_BUILD_NUMBER=17"])
    assert rc == 0
    data = json.loads(out_json.read_text(encoding="utf-8"))
    assert data["APP_BUILD_NUMBER"] == "17"
    assert data["APP_NAME"] == "myproj"
    assert not any(key.startswith("PROJECT_") for key in data)


def test_cli_log_file(tmp_path: Path, git_repo, clean_env):
    root = _with_origin(git_repo)
    log_path = tmp_path / "logs" / "projvars.log"
    rc = main(["-C", str(root), "--dry", "-v", "--log-file", str(log_path)])
    assert rc == 0
    assert "Dry run" in log_path.read_text(encoding="utf-8")


def test_cli_bad_variable_reports_error(capsys, clean_env):
    rc = main(["-D", "NOT_AN_ASSIGNMENT"])
    assert rc == 1
    assert "Error:" in capsys.readouterr().err


def test_cli_unknown_override_key_reports_error(tmp_path: Path, capsys, clean_env):
    rc = main(["-C", str(tmp_path), "-D", "PROJECT_SHOE_SIZE=42", "--dry"])
    assert rc == 1
    assert "Unknown property key" in capsys.readouterr().err
