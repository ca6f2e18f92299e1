"""
Build configuration file and environment loading.

The build is configured from three layers, lowest precedence first:

    configs/build.yaml          features, model paths, generator command, staging
    MODELSTAGE_FEATURE_<NAME>   per-feature environment overrides
    CLI flags                   applied by modelstage.build.cli

Scratch output directory and build profile come from OUT_DIR / PROFILE
(optionally via a .env file at the project root) unless given explicitly.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml
from dotenv import dotenv_values

from modelstage.build.errors import ConfigurationError

FEATURE_NAMES = ("weights_file", "weights_embedded", "half_precision", "rebuild")
FEATURE_ENV_PREFIX = "MODELSTAGE_FEATURE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

DEFAULT_CONFIG: dict[str, Any] = {
    "features": {
        "weights_file": False,
        "weights_embedded": True,
        "half_precision": False,
        "rebuild": False,
    },
    "model": {
        "folder": "src/model",
        "input_file": "squeezenet1.onnx",
        "label_source": "label.txt",
        "label_dest": "labels.py",
        "generated_source": "squeezenet1.py",
        "generated_weights": "squeezenet1.mpk",
        "scratch_subdir": "model",
    },
    "generator": {"command": ["onnx-codegen"]},
    "staging": {"target_dir": "target", "consumer_subdirs": [".", "examples"]},
    "output": {"manifest_filename": "build_meta.json"},
}

_SCHEMA: dict[str, Any] | None = None


def _load_schema() -> dict[str, Any]:
    """Load the packaged build config JSON schema (cached)."""
    global _SCHEMA
    if _SCHEMA is None:
        text = resources.files("modelstage.schemas").joinpath("build_config.schema.json").read_text()
        _SCHEMA = json.loads(text)
    return _SCHEMA


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def load_build_config(path: Path | None) -> dict[str, Any]:
    """Load build config YAML, validate it and fill in defaults.

    Args:
        path: Config path, or None to use the built-in defaults only

    Returns:
        Effective config dict (defaults merged with file contents)

    Raises:
        FileNotFoundError: Config path does not exist
        ConfigurationError: Config is not a mapping or fails schema validation
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config must be a YAML object (dict): {path}")
    try:
        jsonschema.validate(instance=cfg, schema=_load_schema())
    except jsonschema.ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid build config {path} at {location}: {e.message}") from e
    return _merge(DEFAULT_CONFIG, cfg)


def parse_flag(name: str, raw: str) -> bool:
    """Parse a boolean environment value."""
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {raw!r}")


def apply_feature_env(features: dict[str, Any], environ: Mapping[str, str]) -> dict[str, bool]:
    """Overlay MODELSTAGE_FEATURE_<NAME> environment values on a feature mapping."""
    out = {name: bool(features.get(name, False)) for name in FEATURE_NAMES}
    for name in FEATURE_NAMES:
        env_name = FEATURE_ENV_PREFIX + name.upper()
        if env_name in environ:
            out[name] = parse_flag(env_name, environ[env_name])
    return out


def read_environ(project_root: Path, environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Process environment layered over <project_root>/.env (process env wins)."""
    values: dict[str, str] = {
        k: v for k, v in dotenv_values(project_root / ".env").items() if v is not None
    }
    values.update(os.environ if environ is None else environ)
    return values


@dataclass(frozen=True)
class ModelPaths:
    """Fixed locations of model inputs and generated artifacts."""

    model_dir: Path
    input_file: Path
    label_source: Path
    label_dest: Path
    generated_source: str
    generated_weights: str
    scratch_subdir: str

    @classmethod
    def from_config(cls, cfg: dict[str, Any], project_root: Path) -> ModelPaths:
        model = cfg.get("model") or {}
        model_dir = project_root / model["folder"]
        return cls(
            model_dir=model_dir,
            input_file=model_dir / model["input_file"],
            label_source=model_dir / model["label_source"],
            label_dest=model_dir / model["label_dest"],
            generated_source=model["generated_source"],
            generated_weights=model["generated_weights"],
            scratch_subdir=model["scratch_subdir"],
        )


@dataclass(frozen=True)
class BuildEnvironment:
    """Paths provided by the build tool for one invocation."""

    out_dir: Path
    profile: str
    project_root: Path
    target_dir: Path

    def scratch_dir(self, paths: ModelPaths) -> Path:
        """Directory the generator writes into."""
        return self.out_dir / paths.scratch_subdir

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str],
        project_root: Path,
        cfg: dict[str, Any] | None = None,
        out_dir: str | Path | None = None,
        profile: str | None = None,
    ) -> BuildEnvironment:
        """Resolve the build environment; explicit arguments win over environment values.

        Raises:
            ConfigurationError: OUT_DIR or PROFILE is not defined
        """
        out_dir = out_dir or environ.get("OUT_DIR")
        if not out_dir or not str(out_dir).strip():
            raise ConfigurationError("OUT_DIR not defined")
        profile = profile or environ.get("PROFILE")
        if not profile or not profile.strip():
            raise ConfigurationError("PROFILE not defined")

        staging = (cfg or DEFAULT_CONFIG).get("staging") or {}
        target_raw = environ.get("MODELSTAGE_TARGET_DIR") or staging.get("target_dir", "target")
        target_dir = Path(target_raw)
        if not target_dir.is_absolute():
            target_dir = project_root / target_dir

        return cls(
            out_dir=Path(out_dir),
            profile=profile.strip(),
            project_root=project_root,
            target_dir=target_dir,
        )
