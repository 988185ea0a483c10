#!/usr/bin/env python3
"""
Music Library Reconcile CLI

Copies metadata from a tagged library onto high-quality copies of the same
tracks, and tags files from MusicBrainz.

Usage:
    python cli.py <command> [options]

Commands:
    reconcile                Copy library metadata onto high-quality files
    scan <path>              Catalog a folder and report name collisions
    tag <path>               Tag files from a MusicBrainz search
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))


def _load_config(args):
    from orchestrator.config import ConfigManager

    return ConfigManager(args.config)


def cmd_reconcile(args):
    """Copy library metadata onto high-quality files."""
    from orchestrator.pipeline import ReconciliationPipeline
    from orchestrator.prompt import ConsolePrompt
    from orchestrator.report import ReportLog

    config = _load_config(args)
    if args.library:
        config.set('library.path', args.library)
    if args.high_quality:
        config.set('library.high_quality_path', args.high_quality)
    if args.archive:
        config.set('library.archive_path', args.archive)
    if args.replace:
        config.set('library.replace_in_library', True)
    if args.what_if:
        config.set('run.what_if', True)
    if args.policy:
        config.set('run.policy', args.policy)
    if args.always_prompt:
        config.set('matching.always_prompt', True)

    log_path = args.log or config.log_path or \
        f"MP3MetadataCopy_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    prompt = ConsolePrompt() if str(config.policy).lower() == 'prompt' else None

    with ReportLog(log_path) as report:
        pipeline = ReconciliationPipeline(config, prompt=prompt, report=report)
        summary = pipeline.run()
        report.write(f"Log file: {log_path}", source="Pipeline")

    if summary.what_if:
        print("(What-if mode - no changes made)")
    if summary.cancelled:
        return 130
    return 1 if summary.failed else 0


def cmd_scan(args):
    """Catalog a folder and report collisions."""
    from agents.scanner import ScannerAgent

    config = _load_config(args)
    if args.workers:
        config.set('scan.workers', args.workers)

    scanner = ScannerAgent(config)
    result = scanner.process({'path': args.path})
    if result['status'] != 'success':
        print(f"Error: {result['error']}", file=sys.stderr)
        return 1

    print(f"\n=== Scan Results ===")
    print(f"Files: {result['file_count']}")
    print(f"Distinct names: {result['key_count']}")
    print(f"Collisions: {len(result['collisions'])}")
    print(f"Unreadable files: {result['scan_errors']}")
    return 0


def cmd_tag(args):
    """Tag files from a MusicBrainz search."""
    from agents.tagger import TaggerAgent
    from sources.seeders import Seeder, SeederTable

    config = _load_config(args)

    seeder = Seeder(artist=args.artist or "", title=args.title or "", album=args.album or "")
    seeders = SeederTable.load(args.seeders_file) if args.seeders_file else None
    if seeders is not None:
        print(f"Loaded {len(seeders)} seeder entries from {args.seeders_file}")

    if seeder.is_empty and seeders is None:
        print("Error: No seeder data provided. Use --artist/--title or --seeders-file", file=sys.stderr)
        return 2

    tagger = TaggerAgent(
        config,
        seeders=seeders,
        seeder=seeder,
        convert_format=args.convert,
        quality=args.quality,
        output_dir=args.output,
        preserve_original=args.preserve_original,
        dry_run=args.what_if
    )

    if tagger.convert_format and not args.what_if and not tagger.converter.is_available():
        print("Error: FFmpeg not found. Install it or set ffmpeg.path in the config.", file=sys.stderr)
        return 2

    items = tagger.find_files(args.path)
    if not items:
        print(f"Error: No audio files found in {args.path}", file=sys.stderr)
        return 1

    results = tagger.process_batch(items)

    print(f"\n=== Tagging Results ===")
    print(f"Files: {results['total']}")
    print(f"Tagged: {results['success']}")
    print(f"Skipped: {results['skipped']}")
    print(f"Failed: {results['failed']}")
    if args.what_if:
        print("(What-if mode - no changes made)")
    return 1 if results['failed'] else 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog='music-reconcile',
        description='Music Library Reconcile CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', default='reconcile-config.yaml', help='YAML configuration file')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # reconcile command
    reconcile_parser = subparsers.add_parser('reconcile', help='Copy library metadata onto high-quality files')
    reconcile_parser.add_argument('--library', help='Library folder (metadata source)')
    reconcile_parser.add_argument('--high-quality', help='High-quality folder (work set)')
    reconcile_parser.add_argument('--archive', help='Archive folder for replaced library files')
    reconcile_parser.add_argument('--replace', action='store_true', help='Replace library files with processed files')
    reconcile_parser.add_argument('--what-if', action='store_true', help='Preview changes without applying')
    reconcile_parser.add_argument('--policy', choices=['auto', 'prompt', 'skip'],
                                  help='Handling of ambiguous matches')
    reconcile_parser.add_argument('--always-prompt', action='store_true',
                                  help='With --policy prompt, confirm every multi-candidate match')
    reconcile_parser.add_argument('--log', help='Log file path')
    reconcile_parser.set_defaults(func=cmd_reconcile)

    # scan command
    scan_parser = subparsers.add_parser('scan', help='Catalog a folder and report name collisions')
    scan_parser.add_argument('path', help='Path to scan')
    scan_parser.add_argument('--workers', type=int, help='Concurrent tag readers')
    scan_parser.set_defaults(func=cmd_scan)

    # tag command
    tag_parser = subparsers.add_parser('tag', help='Tag files from a MusicBrainz search')
    tag_parser.add_argument('path', help='Audio file or folder')
    tag_parser.add_argument('--artist', help='Artist to search for')
    tag_parser.add_argument('--title', help='Title to search for')
    tag_parser.add_argument('--album', help='Album to search for')
    tag_parser.add_argument('--seeders-file', help='CSV of artist,title,album,filename hints')
    tag_parser.add_argument('--convert', choices=['mp3', 'flac', 'wav', 'm4a', 'ogg'],
                            help='Convert to this format before tagging')
    tag_parser.add_argument('--quality', help='Conversion quality (codec specific)')
    tag_parser.add_argument('--output', help='Output folder for converted files')
    tag_parser.add_argument('--preserve-original', action='store_true', help='Keep files after conversion')
    tag_parser.add_argument('--what-if', action='store_true', help='Search only, change nothing')
    tag_parser.set_defaults(func=cmd_tag)

    return parser


def main(argv=None):
    from orchestrator.config import ConfigurationError

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ConfigurationError as e:
        print("Configuration error:", file=sys.stderr)
        for problem in e.problems:
            print(f"  - {problem}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
