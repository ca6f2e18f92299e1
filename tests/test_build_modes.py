"""Tests for build mode resolution (weights_file / weights_embedded / half_precision / rebuild)."""

import dataclasses
import itertools

import pytest

from modelstage.build.errors import ConfigurationError
from modelstage.build.modes import (
    BuildConfig,
    NumericPrecision,
    WeightEncoding,
    resolve_build_config,
    resolve_from_features,
)


@pytest.mark.parametrize(
    "half_precision,regenerate", list(itertools.product([False, True], repeat=2))
)
def test_valid_combinations_resolve(half_precision: bool, regenerate: bool) -> None:
    """Exactly one encoding toggle set: resolves for every precision/rebuild combination."""
    file_cfg = resolve_build_config(True, False, half_precision, regenerate)
    assert file_cfg.weight_encoding is WeightEncoding.FILE_BASED
    assert file_cfg.file_based

    embedded_cfg = resolve_build_config(False, True, half_precision, regenerate)
    assert embedded_cfg.weight_encoding is WeightEncoding.EMBEDDED
    assert not embedded_cfg.file_based

    expected = NumericPrecision.HALF if half_precision else NumericPrecision.FULL
    for cfg in (file_cfg, embedded_cfg):
        assert cfg.numeric_precision is expected
        assert cfg.regenerate is regenerate


def test_both_encodings_conflict() -> None:
    with pytest.raises(ConfigurationError) as exc:
        resolve_build_config(True, True)
    assert "conflicting modes" in str(exc.value)


def test_no_encoding_selected() -> None:
    with pytest.raises(ConfigurationError) as exc:
        resolve_build_config(False, False, half_precision=True, regenerate=True)
    assert "no mode selected" in str(exc.value)


def test_build_config_is_immutable() -> None:
    cfg = resolve_build_config(False, True)
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.regenerate = True  # type: ignore[misc]


def test_resolve_from_features_defaults_missing_to_false() -> None:
    cfg = resolve_from_features({"weights_embedded": True})
    assert cfg == BuildConfig(WeightEncoding.EMBEDDED, NumericPrecision.FULL, False)
    assert cfg.to_dict() == {
        "weight_encoding": "embedded",
        "numeric_precision": "full",
        "regenerate": False,
    }
