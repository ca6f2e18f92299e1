"""Shared fixtures: a fake ONNX code generator and a minimal project tree."""

import sys
import textwrap
from pathlib import Path

import pytest

FAKE_GENERATOR = textwrap.dedent(
    """
    import argparse
    import os
    import sys
    from pathlib import Path

    parser = argparse.ArgumentParser()
    parser.add_argument("--input", required=True)
    parser.add_argument("--out-dir", required=True)
    parser.add_argument("--record-type", required=True)
    parser.add_argument("--embed-states", action="store_true")
    parser.add_argument("--half-precision", action="store_true")
    args = parser.parse_args()

    if os.environ.get("FAKE_CODEGEN_FAIL"):
        print("fake codegen: forced failure", file=sys.stderr)
        sys.exit(3)

    out = Path(args.out_dir)
    out.mkdir(parents=True, exist_ok=True)
    precision = "half" if args.half_precision else "full"
    (out / "model.src").write_text(
        f"# generated from {Path(args.input).name} ({args.record_type}, {precision})\\n",
        encoding="utf-8",
    )
    if args.record_type == "named_mpk":
        (out / "model.weights").write_bytes(b"\\x00weights-" + precision.encode())
    print("fake codegen: ok")
    """
)


@pytest.fixture
def fake_generator_command(tmp_path: Path) -> list[str]:
    """Command list running the fake generator with the current interpreter."""
    script = tmp_path / "fake_codegen.py"
    script.write_text(FAKE_GENERATOR, encoding="utf-8")
    return [sys.executable, str(script)]


@pytest.fixture
def project(tmp_path: Path, fake_generator_command: list[str]) -> dict:
    """Project root with a model folder, ONNX placeholder, label list and build config."""
    root = tmp_path / "project"
    model_dir = root / "src" / "model"
    model_dir.mkdir(parents=True)
    (model_dir / "squeezenet1.onnx").write_bytes(b"onnx-placeholder")
    (model_dir / "label.txt").write_text("cat\ndog\n", encoding="utf-8")

    cfg = {
        "features": {
            "weights_file": True,
            "weights_embedded": False,
            "half_precision": False,
            "rebuild": True,
        },
        "model": {
            "folder": "src/model",
            "input_file": "squeezenet1.onnx",
            "label_source": "label.txt",
            "label_dest": "labels.py",
            "generated_source": "model.src",
            "generated_weights": "model.weights",
            "scratch_subdir": "model",
        },
        "generator": {"command": fake_generator_command},
        "staging": {"target_dir": "target", "consumer_subdirs": ["examples"]},
        "output": {"manifest_filename": "build_meta.json"},
    }
    return {
        "root": root,
        "model_dir": model_dir,
        "out_dir": tmp_path / "out",
        "cfg": cfg,
    }
