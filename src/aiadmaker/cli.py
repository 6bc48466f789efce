from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .errors import AdPipelineError
from .orchestrator import PipelineConfig, PipelineOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a narrated vertical video ad from a short product prompt."
    )
    parser.add_argument("prompt", help="Short description of the product or business to advertise")
    parser.add_argument(
        "--config",
        type=Path,
        help="Optional path to pipeline configuration JSON/YAML",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Base directory for per-run outputs (defaults to <data_root>/runs)",
    )
    parser.add_argument(
        "--no-captions",
        action="store_true",
        help="Skip burning captions into the final video",
    )
    parser.add_argument(
        "--asset-mode",
        choices=("segment", "script"),
        help="Resolve one asset per sentence, or a handful for the whole script",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main() -> None:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig.from_file(args.config) if args.config else PipelineConfig()
    overrides = {}
    if args.no_captions:
        overrides["render"] = config.render.model_copy(update={"captions_enabled": False})
    if args.asset_mode:
        overrides["asset_mode"] = args.asset_mode
    if overrides:
        config = config.model_copy(update=overrides)

    orchestrator = PipelineOrchestrator.default(config)
    try:
        result = orchestrator.run(args.prompt, output_dir=args.output_dir)
    except AdPipelineError as exc:
        print(f"[{exc.code}] {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Wrote final ad to {result.manifest.final_ad}")
    print(f"Wrote manifest to {result.manifest_path}")


if __name__ == "__main__":
    main()
