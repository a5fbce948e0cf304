"""
Command-line interface for PTFL Reader.

Loads the scan files given on the command line, then either enters the
interactive command loop or, with --no-prompt, renders every entry to PNG
and exits.
"""

import argparse
import os
import sys

from ptflreader.catalog.entry_store import EntryStore
from ptflreader.config import load_config, save_default_config
from ptflreader.dispatch.commands import CommandDispatcher
from ptflreader.preview.bridge import PreviewerBridge
from ptflreader.tracer import configure_tracer, get_tracer


def build_parser():
    parser = argparse.ArgumentParser(
        prog="ptfl-reader",
        description="PTFL Reader: load polar scan lists, render them to PNG/SVG and preview them live",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="One or more scan files to load at startup",
    )
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Render every loaded entry to PNG and exit instead of prompting",
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--out-dir", "-o",
        default=None,
        help="Directory for rendered images (overrides configuration)",
    )
    parser.add_argument(
        "--write-default-config",
        metavar="PATH",
        default=None,
        help="Write the default configuration to PATH and exit",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    parser.add_argument(
        "--trace-level",
        default=None,
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )
    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.write_default_config:
        save_default_config(args.write_default_config)
        print(f"Default configuration saved to: {args.write_default_config}")
        return 0

    for path in args.files:
        if not os.path.exists(path):
            parser.print_help()
            print(f"\nError happened parsing args:\n\tGiven filepath {path} does not exist")
            return 1

    config = load_config(args.config)
    if args.out_dir:
        config.output.out_dir = args.out_dir

    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level or config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )

    store = EntryStore()
    dispatcher = CommandDispatcher(
        store,
        PreviewerBridge(executable=config.preview.executable, notify=print),
        config,
        prompt=False,
    )

    for path in args.files:
        dispatcher.load_file(path)

    if args.no_prompt:
        return handle_no_prompt(store, config)

    dispatcher.prompt = sys.stdin.isatty()
    dispatcher.run()
    return 0


def handle_no_prompt(store, config):
    """Render every catalog entry to ``<label>-<seq>.png``."""
    from ptflreader.pipeline import jobs_for_entries, render_batch
    from ptflreader.render.raster import RasterBackend

    tracer = get_tracer()
    backend = RasterBackend()
    entries = [entry for _, entry in store.iterate()]
    jobs = jobs_for_entries(entries, config.output.out_dir, backend)

    with tracer.span("cli_no_prompt", module="cli", entries=len(entries)):
        result = render_batch(
            jobs, backend,
            config.render.scale, config.render.clip, config.render.lightness,
            workers=config.output.workers,
        )

    print(f"Rendered {len(result.written)}/{result.total} entries to {config.output.out_dir}")
    for path, message in result.failures:
        print(f"  failed {path}: {message}", file=sys.stderr)

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
