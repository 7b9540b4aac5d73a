import os
import json
from pathlib import Path
from typing import Any, Dict

from .pipeline import DetectorConfig, InvalidConfiguration

# Bundled profiles; CMDCT_PROFILES_DIR takes precedence when set
PROFILES_DIR = Path(__file__).resolve().parents[1] / "profiles"


def _profiles_dir() -> Path:
    env = os.getenv("CMDCT_PROFILES_DIR")
    return Path(env) if env else PROFILES_DIR


def _read_json(p: Path) -> Dict[str, Any]:
    return json.loads(p.read_text(encoding="utf-8"))


def load_profile(name_or_path: str) -> Dict[str, Any]:
    """
    Load a detector profile.
      - accepts an absolute/relative path or a bare name (with or without .json)
      - '@N' suffixed aliases fall back to the base profile (default@2 -> default)
      - directory configurable through CMDCT_PROFILES_DIR
    """
    base = _profiles_dir()
    p = Path(name_or_path)

    # 1) explicit path
    if p.suffix == ".json" and p.exists():
        return _read_json(p)
    if p.is_absolute() and p.exists():
        return _read_json(p)

    # 2) name inside the profile directory
    stem = p.name[:-5] if p.name.endswith(".json") else p.name
    cand = base / f"{stem}.json"
    if cand.exists():
        return _read_json(cand)

    # 3) alias fallback
    core = stem.split("@", 1)[0]
    core_cand = base / f"{core}.json"
    if core and core_cand.exists():
        return _read_json(core_cand)

    available = sorted(x.name for x in base.glob("*.json"))
    raise FileNotFoundError(
        f"Profile '{name_or_path}' not found. Looked in {base}. Available: {available}"
    )


def config_from_profile(prof: Dict[str, Any], overrides: Dict[str, Any] | None = None) -> DetectorConfig:
    """Build a validated :class:`DetectorConfig` from a profile's ``detector`` section."""
    section = prof.get("detector", {})
    if not isinstance(section, dict):
        raise InvalidConfiguration("profile 'detector' section must be an object")
    opts = dict(section)
    for k, v in (overrides or {}).items():
        if v is not None:
            opts[k] = v
    return DetectorConfig.from_dict(opts).validate()
