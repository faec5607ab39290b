import json
from pathlib import Path

import pytest

from projvars.core.config import ProjvarsConfig, ShowRetrieved, load_config_from_path


def test_defaults_validate():
    cfg = ProjvarsConfig()
    cfg.validate()
    assert cfg.resolution.overwrite == "all"
    assert cfg.resolution.key_prefix == "PROJECT_"
    assert cfg.output.show_retrieved == ShowRetrieved.NO


def test_json_roundtrip(tmp_path: Path):
    cfg = ProjvarsConfig()
    cfg.resolution.overrides = {"PROJECT_NAME": "x"}
    cfg.resolution.input_files = ["a.env"]
    cfg.requirements.require = ["VERSION"]
    cfg.output.json_file = "out.json"
    path = tmp_path / "cfg.json"
    cfg.to_json(path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert "file" not in data["output"]
    loaded = load_config_from_path(path)
    assert loaded.resolution.overrides == {"PROJECT_NAME": "x"}
    assert loaded.resolution.input_files == ["a.env"]
    assert loaded.requirements.require == ["VERSION"]
    assert loaded.output.json_file == "out.json"
    assert loaded.output.file is None


def test_toml_config(tmp_path: Path):
    path = tmp_path / "projvars.toml"
    path.write_text(
        """
[resolution]
overwrite = "main"
hosting_type = "GitLab"
use_scm = false

[resolution.overrides]
PROJECT_LICENSE = "MIT"

[requirements]
require_all = true
fail_on_missing = true

[output]
show_retrieved = "all"

[logging]
level = "DEBUG"
""",
        encoding="utf-8",
    )
    cfg = load_config_from_path(path)
    cfg.validate()
    assert cfg.resolution.overwrite == "main"
    assert cfg.resolution.hosting_type == "gitlab"
    assert cfg.resolution.use_scm is False
    assert cfg.resolution.overrides == {"PROJECT_LICENSE": "MIT"}
    assert cfg.requirements.require_all and cfg.requirements.fail_on_missing
    assert cfg.output.show_retrieved == "all"
    assert cfg.logging.level == "DEBUG"


def test_unknown_keys_rejected():
    with pytest.raises(ValueError, match="Unsupported options"):
        ProjvarsConfig.from_dict({"resolution": {"overwite": "all"}})


@pytest.mark.parametrize(
    "data",
    [
        {"resolution": {"overwrite": "sometimes"}},
        {"resolution": {"hosting_type": "cvs"}},
        {"resolution": {"overrides": {"SHOE_SIZE": "42"}}},
        {"requirements": {"require_all": True, "require_none": True}},
        {"requirements": {"require": ["NOPE"]}},
        {"output": {"show_retrieved": "some"}},
    ],
)
def test_validate_rejects_bad_values(data):
    cfg = ProjvarsConfig.from_dict(data)
    with pytest.raises(ValueError):
        cfg.validate()


def test_unsupported_extension(tmp_path: Path):
    with pytest.raises(ValueError):
        load_config_from_path(tmp_path / "cfg.yaml")
