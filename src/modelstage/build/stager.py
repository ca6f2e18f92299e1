"""
Artifact staging.

Moves generated files out of the scratch directory into the persistent model
folder, and copies the weights file next to the consumer binaries:

    <out_dir>/model/<source>       -> <model folder>/<source>
    <out_dir>/model/<weights>      -> <model folder>/<weights>
    <model folder>/<weights>       -> <target_dir>/<profile>/<subdir>/<weights>

Consumer directories that do not exist yet are skipped.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from modelstage.build.codegen import GeneratedArtifacts
from modelstage.build.environment import BuildEnvironment, ModelPaths
from modelstage.build.errors import ArtifactCopyError
from modelstage.build.modes import BuildConfig

logger = logging.getLogger(__name__)


def copy_artifact(src: Path, dest: Path, step: str) -> Path:
    """Copy src to dest, overwriting. Raises ArtifactCopyError naming the step and paths."""
    try:
        shutil.copy(src, dest)
    except OSError as e:
        raise ArtifactCopyError(f"[{step}] failed to copy {src} -> {dest}: {e}") from e
    logger.info("[%s] %s -> %s", step, src, dest)
    return dest


def consumer_dirs(env: BuildEnvironment, subdirs: list[str]) -> list[Path]:
    """Profile-specific consumer directories, e.g. target/release and target/release/examples."""
    profile_dir = env.target_dir / env.profile
    dirs: list[Path] = []
    for sub in subdirs:
        d = profile_dir / sub
        if d not in dirs:
            dirs.append(d)
    return dirs


def relocate_model_code(paths: ModelPaths, generated: GeneratedArtifacts) -> Path:
    """Commit the freshly generated model source into the model folder."""
    dest = paths.model_dir / paths.generated_source
    return copy_artifact(generated.source_file, dest, "code relocation")


def stage_weights_to_consumers(
    paths: ModelPaths,
    env: BuildEnvironment,
    subdirs: list[str],
) -> list[Path]:
    """Copy weights from the model folder into every existing consumer directory."""
    src = paths.model_dir / paths.generated_weights
    staged: list[Path] = []
    for d in consumer_dirs(env, subdirs):
        if not d.is_dir():
            logger.debug("Consumer directory %s does not exist; skipping", d)
            continue
        staged.append(copy_artifact(src, d / paths.generated_weights, "weights staging"))
    return staged


def relocate_weights(
    config: BuildConfig,
    paths: ModelPaths,
    env: BuildEnvironment,
    subdirs: list[str],
    generated: GeneratedArtifacts | None = None,
) -> list[Path]:
    """Cache regenerated weights in the model folder, then copy them next to consumers.

    Args:
        generated: Generator output; required when config.regenerate is set

    Returns:
        Every path written, model folder copy first
    """
    staged: list[Path] = []
    if config.regenerate:
        if generated is None or generated.weights_file is None:
            raise ValueError("Regenerating file-based weights requires the generated weights file")
        dest = paths.model_dir / paths.generated_weights
        staged.append(copy_artifact(generated.weights_file, dest, "weights relocation"))
    staged.extend(stage_weights_to_consumers(paths, env, subdirs))
    return staged
