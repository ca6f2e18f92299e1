"""
Build-time model pipeline.

Resolves the weight encoding / precision / rebuild modes, runs the external
ONNX code generator, regenerates the label table and stages generated
artifacts into the model folder and the consumer output directories.
"""

from modelstage.build.errors import ArtifactCopyError, BuildError, ConfigurationError, GeneratorError
from modelstage.build.modes import BuildConfig, NumericPrecision, WeightEncoding, resolve_build_config
from modelstage.build.pipeline import PipelineReport, run_build, run_pipeline

__all__ = [
    "ArtifactCopyError",
    "BuildConfig",
    "BuildError",
    "ConfigurationError",
    "GeneratorError",
    "NumericPrecision",
    "PipelineReport",
    "WeightEncoding",
    "resolve_build_config",
    "run_build",
    "run_pipeline",
]
