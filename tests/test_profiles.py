from cmdct.profiles import load_profile, config_from_profile
from cmdct.pipeline import InvalidConfiguration
from pathlib import Path
import json
import pytest


def test_load_profile_by_name():
    prof = load_profile("default")
    assert prof["detector"]["block_size"] == 4
    assert prof["detector"]["threshold"] == 10.0


def test_load_profile_alias_and_suffix():
    assert load_profile("distant@2") == load_profile("distant")
    assert load_profile("distant.json") == load_profile("distant")


def test_load_profile_from_path(tmp_path):
    data = {"detector": {"block_size": 6, "threshold": 3.5}}
    p = tmp_path / "custom.json"
    p.write_text(json.dumps(data))
    prof = load_profile(str(p))
    assert prof["detector"]["threshold"] == 3.5


def test_profiles_dir_from_env(tmp_path, monkeypatch):
    (tmp_path / "tiny.json").write_text(json.dumps({"detector": {"block_size": 2}}))
    monkeypatch.setenv("CMDCT_PROFILES_DIR", str(tmp_path))
    assert load_profile("tiny")["detector"]["block_size"] == 2
    with pytest.raises(FileNotFoundError) as ei:
        load_profile("default")
    assert "tiny.json" in str(ei.value)


def test_missing_profile():
    with pytest.raises(FileNotFoundError):
        load_profile("does-not-exist")


def test_config_from_profile_and_overrides():
    cfg = config_from_profile(load_profile("distant"))
    assert (cfg.block_size, cfg.threshold, cfg.step, cfg.predicate) == (8, 16.0, 2, "above")
    cfg2 = config_from_profile(load_profile("default"), {"threshold": 4.0, "step": None})
    assert cfg2.threshold == 4.0 and cfg2.step == 1


def test_config_from_profile_rejects_bad_values():
    with pytest.raises(InvalidConfiguration):
        config_from_profile({"detector": {"block_size": 0}})
    with pytest.raises(InvalidConfiguration):
        config_from_profile({"detector": {"colour": "red"}})
    with pytest.raises(InvalidConfiguration):
        config_from_profile({"detector": [4, 10]})


def test_shipped_profiles_are_valid():
    root = Path(__file__).resolve().parents[1] / "profiles"
    names = sorted(p.stem for p in root.glob("*.json"))
    assert names
    for n in names:
        config_from_profile(load_profile(n))
