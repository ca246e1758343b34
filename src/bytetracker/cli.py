"""
Command-line interface for the ByteTrack engine.

Usage:
    bytetracker track MOT17-02/det/det.txt --output output/
    bytetracker track MOT17/train/ --output output/
    bytetracker config --show
    bytetracker config --generate config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from . import __version__
from .config import PipelineConfig, get_default_config
from .pipeline import run_pipeline


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bytetracker",
        description="ByteTrack multi-object tracking over detection sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Track a single detection file:
    bytetracker track det.txt -o output/

  Track a MOTChallenge sequence (uses seqinfo.ini when present):
    bytetracker track MOT17-02/ -o output/

  Track all sequences under a directory:
    bytetracker track MOT17/train/ -o output/

  Use a custom config file:
    bytetracker track det.txt -c config.yaml -o output/

  Generate a default config file:
    bytetracker config --generate my_config.yaml
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (use -vv for debug)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Track command
    track_parser = subparsers.add_parser(
        "track",
        help="Track detection file(s)",
    )
    track_parser.add_argument(
        "input",
        type=Path,
        help="Detection file, sequence directory or directory of sequences",
    )
    track_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output/)",
    )
    track_parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to config YAML file",
    )
    track_parser.add_argument(
        "--track-thresh",
        type=float,
        help="Confidence splitting high and low detections",
    )
    track_parser.add_argument(
        "--match-thresh",
        type=float,
        help="Maximum IoU distance for the first association",
    )
    track_parser.add_argument(
        "--trails",
        action="store_true",
        help="Also save per-track center trails",
    )
    track_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bars",
    )
    track_parser.add_argument(
        "--exclude",
        nargs="+",
        default=[],
        help="Path patterns to exclude",
    )

    # Config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration utilities",
    )
    config_group = config_parser.add_mutually_exclusive_group(required=True)
    config_group.add_argument(
        "--show",
        action="store_true",
        help="Show current default configuration",
    )
    config_group.add_argument(
        "--generate",
        type=Path,
        metavar="FILE",
        help="Generate a default config file",
    )

    return parser


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cmd_track(args: argparse.Namespace) -> int:
    """Handle the track command."""
    # Load config
    if args.config:
        if not args.config.exists():
            print(f"Error: Config file not found: {args.config}", file=sys.stderr)
            return 1
        config = PipelineConfig.from_yaml(args.config)
    else:
        config = get_default_config()

    # Override config with CLI args
    config.output.output_dir = args.output
    if args.track_thresh is not None:
        config.tracker.track_thresh = args.track_thresh
    if args.match_thresh is not None:
        config.tracker.match_thresh = args.match_thresh
    if args.trails:
        config.output.save_trails = True

    # Validate input
    if not args.input.exists():
        print(f"Error: Input not found: {args.input}", file=sys.stderr)
        return 1

    # Run pipeline
    try:
        results = run_pipeline(
            input_path=args.input,
            output_dir=args.output,
            config=config,
            exclude_patterns=args.exclude,
            show_progress=not args.no_progress,
        )

        print("\nTracking complete!")
        print(f"Processed {len(results)} sequence(s)")
        print(f"Results saved to: {args.output}")

        return 0

    except Exception as e:
        logging.exception("Pipeline failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the config command."""
    config = get_default_config()

    if args.show:
        print(yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False))
        return 0

    if args.generate:
        config.to_yaml(args.generate)
        print(f"Generated config file: {args.generate}")
        return 0

    return 1


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.verbose)

    if args.command == "track":
        return cmd_track(args)
    elif args.command == "config":
        return cmd_config(args)

    return 1


if __name__ == "__main__":
    sys.exit(main())
