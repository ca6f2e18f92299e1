"""Tests for artifact staging into the model folder and consumer directories."""

from pathlib import Path

import pytest

from modelstage.build.codegen import GeneratedArtifacts
from modelstage.build.environment import BuildEnvironment, ModelPaths
from modelstage.build.errors import ArtifactCopyError
from modelstage.build.modes import resolve_build_config
from modelstage.build.stager import (
    consumer_dirs,
    relocate_model_code,
    relocate_weights,
    stage_weights_to_consumers,
)


def _setup(tmp_path: Path, profile: str = "release") -> tuple[ModelPaths, BuildEnvironment]:
    model_dir = tmp_path / "src" / "model"
    model_dir.mkdir(parents=True)
    paths = ModelPaths(
        model_dir=model_dir,
        input_file=model_dir / "model.onnx",
        label_source=model_dir / "label.txt",
        label_dest=model_dir / "labels.py",
        generated_source="model.src",
        generated_weights="model.weights",
        scratch_subdir="model",
    )
    env = BuildEnvironment(
        out_dir=tmp_path / "out",
        profile=profile,
        project_root=tmp_path,
        target_dir=tmp_path / "target",
    )
    env.scratch_dir(paths).mkdir(parents=True)
    return paths, env


def test_consumer_dirs_per_profile(tmp_path: Path) -> None:
    _, env = _setup(tmp_path, profile="debug")
    dirs = consumer_dirs(env, [".", "examples", "examples"])
    assert dirs == [tmp_path / "target" / "debug", tmp_path / "target" / "debug" / "examples"]


def test_relocate_model_code_overwrites(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    (paths.model_dir / "model.src").write_text("old", encoding="utf-8")
    (env.scratch_dir(paths) / "model.src").write_text("new", encoding="utf-8")

    dest = relocate_model_code(paths, GeneratedArtifacts(env.scratch_dir(paths) / "model.src"))
    assert dest == paths.model_dir / "model.src"
    assert dest.read_text(encoding="utf-8") == "new"


def test_relocate_model_code_missing_source_is_fatal(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    with pytest.raises(ArtifactCopyError) as exc:
        relocate_model_code(paths, GeneratedArtifacts(env.scratch_dir(paths) / "model.src"))
    assert "code relocation" in str(exc.value)
    assert isinstance(exc.value, OSError)


def test_consumer_staging_noop_when_dir_absent(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    (paths.model_dir / "model.weights").write_bytes(b"w")

    staged = stage_weights_to_consumers(paths, env, ["examples"])
    assert staged == []
    assert not (tmp_path / "target").exists()


def test_consumer_staging_copies_when_dir_exists(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    (paths.model_dir / "model.weights").write_bytes(b"w")
    examples = tmp_path / "target" / "release" / "examples"
    examples.mkdir(parents=True)

    staged = stage_weights_to_consumers(paths, env, [".", "examples"])
    assert staged == [tmp_path / "target" / "release" / "model.weights", examples / "model.weights"]
    assert (examples / "model.weights").read_bytes() == b"w"


def test_relocate_weights_caches_before_staging(tmp_path: Path) -> None:
    """With rebuild, the scratch weights reach the consumer through the model folder."""
    paths, env = _setup(tmp_path)
    (paths.model_dir / "model.weights").write_bytes(b"stale")
    (env.scratch_dir(paths) / "model.weights").write_bytes(b"fresh")
    examples = tmp_path / "target" / "release" / "examples"
    examples.mkdir(parents=True)

    config = resolve_build_config(True, False, regenerate=True)
    staged = relocate_weights(
        config,
        paths,
        env,
        ["examples"],
        generated=GeneratedArtifacts(
            source_file=env.scratch_dir(paths) / "model.src",
            weights_file=env.scratch_dir(paths) / "model.weights",
        ),
    )

    assert staged == [paths.model_dir / "model.weights", examples / "model.weights"]
    assert (paths.model_dir / "model.weights").read_bytes() == b"fresh"
    assert (examples / "model.weights").read_bytes() == b"fresh"


def test_relocate_weights_without_rebuild_uses_committed_weights(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    (paths.model_dir / "model.weights").write_bytes(b"committed")
    (env.scratch_dir(paths) / "model.weights").write_bytes(b"ignored")
    examples = tmp_path / "target" / "release" / "examples"
    examples.mkdir(parents=True)

    config = resolve_build_config(True, False, regenerate=False)
    staged = relocate_weights(config, paths, env, ["examples"])

    assert staged == [examples / "model.weights"]
    assert (examples / "model.weights").read_bytes() == b"committed"


def test_consumer_copy_failure_is_fatal(tmp_path: Path) -> None:
    """Consumer directory exists but the committed weights are missing."""
    paths, env = _setup(tmp_path)
    (tmp_path / "target" / "release" / "examples").mkdir(parents=True)

    with pytest.raises(ArtifactCopyError) as exc:
        stage_weights_to_consumers(paths, env, ["examples"])
    assert "weights staging" in str(exc.value)


def test_relocate_weights_uses_generator_output_path(tmp_path: Path) -> None:
    """Weights are taken from wherever the generator reported them."""
    paths, env = _setup(tmp_path)
    elsewhere = tmp_path / "gen_out"
    elsewhere.mkdir()
    (elsewhere / "custom.weights").write_bytes(b"from-generator")

    config = resolve_build_config(True, False, regenerate=True)
    generated = GeneratedArtifacts(source_file=elsewhere / "custom.src", weights_file=elsewhere / "custom.weights")
    staged = relocate_weights(config, paths, env, [], generated=generated)

    assert staged == [paths.model_dir / "model.weights"]
    assert (paths.model_dir / "model.weights").read_bytes() == b"from-generator"


def test_relocate_weights_rebuild_requires_generated_weights(tmp_path: Path) -> None:
    paths, env = _setup(tmp_path)
    config = resolve_build_config(True, False, regenerate=True)

    with pytest.raises(ValueError):
        relocate_weights(config, paths, env, ["examples"], generated=GeneratedArtifacts(tmp_path / "a.src"))
