"""
Build mode resolution.

Turns the four independent feature toggles (weights_file, weights_embedded,
half_precision, rebuild) into a validated, immutable BuildConfig. Resolution
happens before any file I/O so an invalid combination aborts the build
without side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from modelstage.build.errors import ConfigurationError


class WeightEncoding(str, Enum):
    """Where model parameters live after code generation."""

    EMBEDDED = "embedded"
    FILE_BASED = "file_based"


class NumericPrecision(str, Enum):
    FULL = "full"
    HALF = "half"


@dataclass(frozen=True)
class BuildConfig:
    """Resolved build configuration for one pipeline invocation."""

    weight_encoding: WeightEncoding
    numeric_precision: NumericPrecision
    regenerate: bool

    @property
    def file_based(self) -> bool:
        return self.weight_encoding is WeightEncoding.FILE_BASED

    def to_dict(self) -> dict[str, Any]:
        return {
            "weight_encoding": self.weight_encoding.value,
            "numeric_precision": self.numeric_precision.value,
            "regenerate": self.regenerate,
        }


def resolve_build_config(
    file_based_enabled: bool,
    embedded_enabled: bool,
    half_precision: bool = False,
    regenerate: bool = False,
) -> BuildConfig:
    """Validate the feature toggles and derive a BuildConfig.

    Args:
        file_based_enabled: weights_file toggle
        embedded_enabled: weights_embedded toggle
        half_precision: Generate half precision weights
        regenerate: Re-run code generation from the ONNX file

    Returns:
        Resolved BuildConfig

    Raises:
        ConfigurationError: Both or neither weight encoding toggles are set
    """
    if file_based_enabled and embedded_enabled:
        raise ConfigurationError(
            "conflicting modes: only one of weights_file and weights_embedded can be enabled"
        )
    if not file_based_enabled and not embedded_enabled:
        raise ConfigurationError(
            "no mode selected: one of weights_file and weights_embedded must be enabled"
        )

    encoding = WeightEncoding.FILE_BASED if file_based_enabled else WeightEncoding.EMBEDDED
    precision = NumericPrecision.HALF if half_precision else NumericPrecision.FULL
    return BuildConfig(
        weight_encoding=encoding,
        numeric_precision=precision,
        regenerate=bool(regenerate),
    )


def resolve_from_features(features: dict[str, Any]) -> BuildConfig:
    """Resolve a BuildConfig from a feature mapping (config file `features:` section)."""
    return resolve_build_config(
        file_based_enabled=bool(features.get("weights_file", False)),
        embedded_enabled=bool(features.get("weights_embedded", False)),
        half_precision=bool(features.get("half_precision", False)),
        regenerate=bool(features.get("rebuild", False)),
    )
