"""
Build pipeline driver.

Sequence (every step fatal on failure, no retry, no rollback):

    1. resolve build modes (before any side effect)
    2. rebuild only:   generate model code -> relocate code -> generate label table
    3. weights_file:   relocate weights (model folder, then consumer directories)
    4. write build manifest to the scratch directory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from modelstage.build.codegen import (
    GeneratedArtifacts,
    ModelGenerator,
    SubprocessModelGenerator,
    invoke_codegen,
)
from modelstage.build.environment import BuildEnvironment, ModelPaths, read_environ
from modelstage.build.labels import generate_label_table
from modelstage.build.modes import BuildConfig, resolve_from_features
from modelstage.build.stager import consumer_dirs, relocate_model_code, relocate_weights
from modelstage.utils.run_logging import describe_file, write_json

logger = logging.getLogger(__name__)

STEP_CODEGEN = "codegen"
STEP_CODE_RELOCATION = "code_relocation"
STEP_LABEL_TABLE = "label_table"
STEP_WEIGHTS_RELOCATION = "weights_relocation"


@dataclass
class PipelineReport:
    """What a pipeline run did (or, for a dry run, would do)."""

    config: BuildConfig
    steps: list[str] = field(default_factory=list)
    staged: list[Path] = field(default_factory=list)
    planned_commands: list[str] = field(default_factory=list)
    manifest_path: Path | None = None
    dry_run: bool = False


def plan_steps(config: BuildConfig) -> list[str]:
    """Ordered step names that run for a build config."""
    steps: list[str] = []
    if config.regenerate:
        steps += [STEP_CODEGEN, STEP_CODE_RELOCATION, STEP_LABEL_TABLE]
    if config.file_based:
        steps.append(STEP_WEIGHTS_RELOCATION)
    return steps


def make_generator(cfg: dict[str, Any], paths: ModelPaths) -> SubprocessModelGenerator:
    """Build the subprocess generator from the `generator:` config section."""
    command = (cfg.get("generator") or {}).get("command") or []
    return SubprocessModelGenerator(
        command=command,
        source_name=paths.generated_source,
        weights_name=paths.generated_weights,
    )


def _planned_commands(
    config: BuildConfig,
    paths: ModelPaths,
    env: BuildEnvironment,
    generator: ModelGenerator,
    subdirs: list[str],
) -> list[str]:
    planned: list[str] = []
    scratch = env.scratch_dir(paths)
    if config.regenerate:
        if isinstance(generator, SubprocessModelGenerator):
            cmd = generator.build_command(
                paths.input_file, scratch, config.weight_encoding, config.numeric_precision
            )
            planned.append(" ".join(cmd))
        else:
            planned.append(f"[codegen] {type(generator).__name__}: {paths.input_file} -> {scratch}")
        planned.append(f"[copy] {scratch / paths.generated_source} -> {paths.model_dir}")
        planned.append(f"[labels] {paths.label_source} -> {paths.label_dest}")
    if config.file_based:
        if config.regenerate:
            planned.append(f"[copy] {scratch / paths.generated_weights} -> {paths.model_dir}")
        for d in consumer_dirs(env, subdirs):
            planned.append(f"[copy if dir exists] {paths.model_dir / paths.generated_weights} -> {d}")
    return planned


def write_manifest(
    report: PipelineReport,
    paths: ModelPaths,
    env: BuildEnvironment,
    manifest_filename: str,
) -> Path:
    """Write build_meta.json into the scratch directory."""
    meta = {
        "timestamp": datetime.now().isoformat(),
        "profile": env.profile,
        "config": report.config.to_dict(),
        "steps": report.steps,
        "commands": report.planned_commands,
        "inputs": {
            "onnx": describe_file(paths.input_file),
            "labels": describe_file(paths.label_source),
        },
        "outputs": [describe_file(p) for p in report.staged],
    }
    manifest_path = env.scratch_dir(paths) / manifest_filename
    write_json(manifest_path, meta)
    return manifest_path


def run_pipeline(
    config: BuildConfig,
    paths: ModelPaths,
    env: BuildEnvironment,
    generator: ModelGenerator,
    consumer_subdirs: list[str],
    manifest_filename: str | None = None,
    dry_run: bool = False,
) -> PipelineReport:
    """Run the build steps for an already-resolved build config.

    Args:
        config: Resolved build config
        paths: Model input/output locations
        env: Scratch directory, profile and target directory
        generator: Model code generator (used only when regenerating)
        consumer_subdirs: Subdirectories of <target>/<profile> that receive weights
        manifest_filename: Write a build manifest with this name; None disables it
        dry_run: Only plan; touch nothing

    Returns:
        PipelineReport

    Raises:
        GeneratorError: Code generation failed
        OSError: Label table or artifact copy failed
    """
    report = PipelineReport(
        config=config,
        planned_commands=_planned_commands(config, paths, env, generator, consumer_subdirs),
        dry_run=dry_run,
    )
    if dry_run:
        report.steps = plan_steps(config)
        return report

    generated: GeneratedArtifacts | None = None
    if config.regenerate:
        logger.info("Generating model code from %s", paths.input_file)
        generated = invoke_codegen(generator, config, paths, env)
        report.steps.append(STEP_CODEGEN)

        report.staged.append(relocate_model_code(paths, generated))
        report.steps.append(STEP_CODE_RELOCATION)

        generate_label_table(paths.label_source, paths.label_dest)
        report.staged.append(paths.label_dest)
        report.steps.append(STEP_LABEL_TABLE)

    if config.file_based:
        report.staged.extend(
            relocate_weights(config, paths, env, consumer_subdirs, generated=generated)
        )
        report.steps.append(STEP_WEIGHTS_RELOCATION)

    if manifest_filename:
        report.manifest_path = write_manifest(report, paths, env, manifest_filename)

    logger.info("Build pipeline finished: %s", ", ".join(report.steps) or "nothing to do")
    return report


def run_build(
    cfg: dict[str, Any],
    features: Mapping[str, bool],
    project_root: Path,
    environ: Mapping[str, str] | None = None,
    out_dir: str | Path | None = None,
    profile: str | None = None,
    generator: ModelGenerator | None = None,
    dry_run: bool = False,
) -> PipelineReport:
    """Resolve modes, then the environment, then run the pipeline.

    Mode resolution comes first so an invalid toggle combination aborts before
    the environment is read or any file is touched.
    """
    config = resolve_from_features(dict(features))
    logger.info(
        "Build config: encoding=%s precision=%s regenerate=%s",
        config.weight_encoding.value,
        config.numeric_precision.value,
        config.regenerate,
    )

    values = read_environ(project_root, environ)
    env = BuildEnvironment.from_environ(values, project_root, cfg, out_dir=out_dir, profile=profile)
    paths = ModelPaths.from_config(cfg, project_root)
    if generator is None:
        generator = make_generator(cfg, paths)

    staging = cfg.get("staging") or {}
    output = cfg.get("output") or {}
    return run_pipeline(
        config,
        paths,
        env,
        generator,
        consumer_subdirs=list(staging.get("consumer_subdirs") or []),
        manifest_filename=output.get("manifest_filename"),
        dry_run=dry_run,
    )
