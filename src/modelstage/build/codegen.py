"""
Code generator invocation.

The ONNX-to-source generator is an external program. It is called once per
regenerating build with:

    <command...> --input <model.onnx> --out-dir <scratch dir>
                 --record-type {bincode|named_mpk} [--embed-states] [--half-precision]

and is expected to leave the generated source file (and, for file-based
weights, the weights file) in the scratch directory. Any failure is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from modelstage.build.environment import BuildEnvironment, ModelPaths
from modelstage.build.errors import GeneratorError
from modelstage.build.modes import BuildConfig, NumericPrecision, WeightEncoding
from modelstage.utils.run_logging import run_subprocess_logged

logger = logging.getLogger(__name__)

# Embedded weights use a self-contained binary record compiled into the source;
# file-based weights use a named record file loaded at run time.
RECORD_TYPES = {
    WeightEncoding.EMBEDDED: "bincode",
    WeightEncoding.FILE_BASED: "named_mpk",
}


@dataclass
class GeneratedArtifacts:
    """Files produced by the generator in its output directory."""

    source_file: Path
    weights_file: Path | None = None


class ModelGenerator:
    """Base interface for model code generators."""

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        encoding: WeightEncoding,
        precision: NumericPrecision,
    ) -> GeneratedArtifacts:
        """Generate model source (and weights) from an ONNX file.

        Args:
            input_path: ONNX model file
            output_dir: Scratch directory for generated files
            encoding: Weight encoding mode
            precision: Numeric precision of generated weights

        Returns:
            Generated artifacts

        Raises:
            GeneratorError: Generation failed
        """
        raise NotImplementedError


class SubprocessModelGenerator(ModelGenerator):
    """Runs an external generator command and checks its outputs."""

    def __init__(
        self,
        command: list[str],
        source_name: str,
        weights_name: str,
        log_name: str = "codegen.log",
    ):
        if not command:
            raise ValueError("Generator command must not be empty")
        self.command = list(command)
        self.source_name = source_name
        self.weights_name = weights_name
        self.log_name = log_name

    def build_command(
        self,
        input_path: Path,
        output_dir: Path,
        encoding: WeightEncoding,
        precision: NumericPrecision,
    ) -> list[str]:
        cmd = [
            *self.command,
            "--input",
            str(input_path),
            "--out-dir",
            str(output_dir),
            "--record-type",
            RECORD_TYPES[encoding],
        ]
        if encoding is WeightEncoding.EMBEDDED:
            cmd.append("--embed-states")
        if precision is NumericPrecision.HALF:
            cmd.append("--half-precision")
        return cmd

    def generate(
        self,
        input_path: Path,
        output_dir: Path,
        encoding: WeightEncoding,
        precision: NumericPrecision,
    ) -> GeneratedArtifacts:
        input_path = Path(input_path)
        output_dir = Path(output_dir)
        if not input_path.is_file():
            raise GeneratorError(f"ONNX input not found: {input_path}")

        output_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(input_path, output_dir, encoding, precision)
        log_path = output_dir / "logs" / self.log_name
        logger.info("Running generator: %s", " ".join(cmd))
        try:
            proc = run_subprocess_logged(cmd, log_path)
        except OSError as e:
            raise GeneratorError(f"Failed to start generator {self.command[0]!r}: {e}") from e
        if proc.returncode != 0:
            raise GeneratorError(
                f"Generator exited with status {proc.returncode} (see {log_path})"
            )

        source_file = output_dir / self.source_name
        if not source_file.is_file():
            raise GeneratorError(f"Generator did not produce {source_file}")

        weights_file = None
        if encoding is WeightEncoding.FILE_BASED:
            weights_file = output_dir / self.weights_name
            if not weights_file.is_file():
                raise GeneratorError(f"Generator did not produce {weights_file}")

        return GeneratedArtifacts(source_file=source_file, weights_file=weights_file)


def invoke_codegen(
    generator: ModelGenerator,
    config: BuildConfig,
    paths: ModelPaths,
    env: BuildEnvironment,
) -> GeneratedArtifacts:
    """Run the generator for the resolved build config into the scratch directory."""
    return generator.generate(
        paths.input_file,
        env.scratch_dir(paths),
        config.weight_encoding,
        config.numeric_precision,
    )
