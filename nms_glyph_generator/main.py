"""
Main entry point for the NMS Glyph Generator.
Generates portal addresses and manages the region directory from the command line.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from .address_builder import AddressStatus, build_address
from .config import get_default_data_path, load_config, validate_config
from .glyph_codec import coordinates_to_glyphs, format_glyph, glyph_names, glyph_names_to_code
from .pipeline import DirectoryPipeline
from .wiki_client import FetchError
from . import __version__


def setup_logging(config: dict):
    """Configure logging based on settings."""
    debug_config = config.get('debug', {})

    level = getattr(logging, debug_config.get('log_level', 'INFO').upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File logging if enabled
    if debug_config.get('enabled', False):
        log_file = Path(debug_config.get('log_file', 'glyphs.log'))
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logging.getLogger().addHandler(file_handler)


def print_progress(current: int, total: int, start_time: float):
    elapsed = int(time.time() - start_time)
    print(f"[*] {current}/{total} regions fetched ({elapsed}s)")


def print_glyphs(glyphs: str, show_names: bool = False):
    print(f"Portal Code: {format_glyph(glyphs)}")
    if show_names:
        print("  " + " ".join(glyph_names(glyphs)))


def cmd_generate(args, config: dict) -> int:
    suffix = args.suffix or ""
    if args.suffix_names:
        try:
            suffix = glyph_names_to_code(args.suffix_names)
        except ValueError as e:
            print(f"[!] {e}")
            return 2

    result = build_address(suffix)
    if result.status == AddressStatus.INVALID:
        print(f"[!] {result.message}")
        return 2
    if result.status == AddressStatus.INCOMPLETE:
        print(f"[!] {result.message}")

    print_glyphs(result.glyphs, args.names)
    return 0


def cmd_region(args, config: dict) -> int:
    pipeline = DirectoryPipeline.from_config(config)
    directory = pipeline.load_seed(get_default_data_path(config))

    if args.list or not (args.galaxy and args.civilization and args.region):
        if not args.galaxy:
            for galaxy in directory.galaxies:
                print(galaxy)
        elif not args.civilization:
            for civ in directory.civilizations(args.galaxy):
                print(civ)
        else:
            for region in directory.regions(args.galaxy, args.civilization):
                print(f"{region.name}\t{region.coordinates}")
        return 0

    coordinates = directory.coordinates(args.galaxy, args.civilization, args.region)
    if coordinates is None:
        print(f"[!] Region not found: {args.region}")
        return 1

    glyphs = coordinates_to_glyphs(coordinates)
    if not glyphs:
        print(f"[!] Cannot derive an address from coordinates {coordinates}")
        return 1

    print(f"Region: {args.region} [{coordinates}]")
    print_glyphs(glyphs, args.names)
    return 0


def cmd_fetch(args, config: dict) -> int:
    pipeline = DirectoryPipeline.from_config(config, on_progress=print_progress)
    print("[*] Fetching region directory (this can take a while)...")
    try:
        result = pipeline.crawl(force_refresh=args.force)
    except FetchError as e:
        print(f"[!] Fetch failed: {e}")
        return 1
    finally:
        pipeline.scheduler.stop()

    directory = result.directory
    state = "complete" if result.complete else "partial (run again to resume)"
    source = " from cache" if result.from_cache else ""
    print(f"[+] Directory {state}{source}: {len(directory.galaxies)} galaxies, "
          f"{directory.civilization_count()} civilizations, {directory.region_count()} regions")
    return 0


def cmd_snapshot(args, config: dict) -> int:
    from .snapshot import build_snapshot

    try:
        build_snapshot(args.output, config)
    except FetchError as e:
        logging.getLogger('nms_glyphs.main').error(f"=== Error updating data === {e}")
        return 1
    return 0


def cmd_serve(args, config: dict) -> int:
    from .api import run_server

    server = config.setdefault('server', {})
    if args.host:
        server['host'] = args.host
    if args.port:
        server['port'] = args.port
    print(f"[*] Starting server at http://{server.get('host')}:{server.get('port')}")
    print("  Press Ctrl+C to stop")
    run_server(config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='nms-glyphs', description="No Man's Sky portal glyph generator")
    parser.add_argument('--config', type=Path, help='Path to config.json')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Generate a random portal address')
    generate.add_argument('--suffix', default='', help='Glyph code whose coordinates to keep')
    generate.add_argument('--suffix-names', nargs='+', metavar='NAME',
                          help='Same as --suffix, given as glyph names (sunset, bird, ...)')
    generate.add_argument('--names', action='store_true', help='Show glyph names')
    generate.set_defaults(func=cmd_generate)

    region = sub.add_parser('region', help='Pick a region and show its portal address')
    region.add_argument('--galaxy')
    region.add_argument('--civilization')
    region.add_argument('--region')
    region.add_argument('--list', action='store_true', help='List choices for the next level')
    region.add_argument('--names', action='store_true', help='Show glyph names')
    region.set_defaults(func=cmd_region)

    fetch = sub.add_parser('fetch', help='Fetch or resume the region directory from the wiki')
    fetch.add_argument('--force', action='store_true', help='Ignore the cached directory')
    fetch.set_defaults(func=cmd_fetch)

    snapshot = sub.add_parser('snapshot', help='Rebuild the default dataset file')
    snapshot.add_argument('--output', type=Path, help='Output file (default: bundled defaultData.json)')
    snapshot.set_defaults(func=cmd_snapshot)

    serve = sub.add_parser('serve', help='Run the HTTP service')
    serve.add_argument('--host')
    serve.add_argument('--port', type=int)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    setup_logging(config)

    is_valid, errors = validate_config(config)
    if not is_valid:
        print("[!] Configuration issues:")
        for error in errors:
            print(f"    - {error}")
        return 1

    try:
        return args.func(args, config)
    except KeyboardInterrupt:
        print()
        print("[*] Interrupted")
        return 130


if __name__ == '__main__':
    sys.exit(main())
