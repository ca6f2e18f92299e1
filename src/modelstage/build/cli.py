"""
Build pipeline CLI.

Runs before the consuming program is built:

    python -m modelstage.build.cli --config configs/build.yaml \
        [--weights_file | --no-weights_file] [--weights_embedded | --no-weights_embedded] \
        [--half_precision | --no-half_precision] [--rebuild | --no-rebuild] \
        [--out_dir DIR] [--profile debug|release] [--project_root DIR] \
        [--dry_run] [--verbose]

OUT_DIR and PROFILE are read from the environment (or <project_root>/.env)
when not given on the command line. Exit status is 0 on success, 1 on abort.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from modelstage.build.environment import (
    FEATURE_NAMES,
    apply_feature_env,
    load_build_config,
    read_environ,
)
from modelstage.build.pipeline import run_build

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/build.yaml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate model code from ONNX and stage labels/weights for the consuming build.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Build config YAML (default: <project_root>/{DEFAULT_CONFIG_PATH} if present)",
    )
    for name in FEATURE_NAMES:
        parser.add_argument(
            f"--{name}",
            action=argparse.BooleanOptionalAction,
            default=None,
            help=f"Override features.{name}",
        )
    parser.add_argument("--out_dir", type=str, default=None, help="Scratch output directory (default: $OUT_DIR)")
    parser.add_argument("--profile", type=str, default=None, help="Build profile (default: $PROFILE)")
    parser.add_argument(
        "--project_root",
        type=Path,
        default=None,
        help="Project root holding the model folder (default: current directory)",
    )
    parser.add_argument("--dry_run", action="store_true", help="Print planned steps without touching files")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _resolve_config_path(config: Path | None, project_root: Path) -> Path | None:
    if config is not None:
        return config if config.is_absolute() else project_root / config
    default = project_root / DEFAULT_CONFIG_PATH
    return default if default.exists() else None


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    project_root = (args.project_root or Path.cwd()).resolve()

    try:
        config_path = _resolve_config_path(args.config, project_root)
        if config_path is None:
            logger.info("No build config found; using built-in defaults")
        cfg = load_build_config(config_path)

        environ = read_environ(project_root)
        features = apply_feature_env(cfg.get("features") or {}, environ)
        for name in FEATURE_NAMES:
            value = getattr(args, name)
            if value is not None:
                features[name] = value

        report = run_build(
            cfg,
            features,
            project_root,
            environ=environ,
            out_dir=args.out_dir,
            profile=args.profile,
            dry_run=args.dry_run,
        )
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=args.verbose)
        print(f"Build aborted: {e}", file=sys.stderr)
        return 1

    if report.dry_run:
        print("Dry run: planned steps:")
        for step in report.steps:
            print(f"  {step}")
        print("Planned commands:")
        for c in report.planned_commands:
            print(f"  {c}")
        return 0

    for path in report.staged:
        print(f"Staged {path}")
    if report.manifest_path is not None:
        print(f"Build manifest: {report.manifest_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
