"""
IPA Builder CLI - thin entrypoint for operator commands.

Commands:
- package: Repackage one zipped .app bundle into an .ipa
- watch: Watch a directory and repackage every Runner.app*.zip dropped in
- serve: Run the HTTP service

Exit Codes:
===========
- 0: Success (or watch stopped by user)
- 1: Invalid arguments or configuration
- 2: Packaging failed (bad archive, no bundle found)
- 4: System error (file not found, permissions, etc.)
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import NoReturn

from . import __version__
from .packaging import PackagingRequest, package
from .packaging.errors import (
    InputFileNotFoundError,
    PackagingConfigError,
    PackagingError,
    PackagingIOError,
)
from .watchfolders import WatchConfig, WatchFolderRunner, WatchMessageKind
from .watchfolders.errors import WatchConfigError

logger = logging.getLogger(__name__)

MESSAGE_POLL_SECONDS = 0.25
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8085


def _output_name(args: argparse.Namespace) -> str:
    return args.output_name if args.output_name is not None else f"{args.name}.ipa"


def cmd_package(args: argparse.Namespace) -> NoReturn:
    """Repackage a single archive and print the result."""
    request = PackagingRequest(
        source_path=str(args.source),
        output_dir=str(args.output_dir),
        app_name=args.name,
        output_name=_output_name(args),
    )

    try:
        result = package(request)
    except InputFileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(4)
    except PackagingConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    except PackagingIOError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(4)
    except PackagingError as e:
        print(f"✗ Packaging failed: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"✓ Generated: {result.archive_path}")
    print(f"  Bundle: {result.bundle_name}")
    print(f"  Size: {result.size_bytes} bytes")
    print(f"  Time: {result.duration_ms:.0f} ms")
    sys.exit(0)


def cmd_watch(args: argparse.Namespace) -> NoReturn:
    """
    Run the watcher in the foreground.

    Prints status messages until Ctrl-C, then stops the loop and prints
    whatever it reported on the way out.
    """
    config = WatchConfig(
        watch_dir=str(Path(args.folder).resolve()),
        output_dir=str(Path(args.output_dir).resolve()),
        app_name=args.name,
        output_name=_output_name(args),
    )

    try:
        runner = WatchFolderRunner.start(config)
    except WatchConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    exit_code = 0
    try:
        while runner.is_running:
            for message in runner.drain():
                print(message)
                if message.kind == WatchMessageKind.WATCHER_ERROR:
                    exit_code = 4
            time.sleep(MESSAGE_POLL_SECONDS)
    except KeyboardInterrupt:
        print("\nStopping watcher...", file=sys.stderr)
    finally:
        runner.stop()
        for message in runner.drain():
            print(message)

    sys.exit(exit_code)


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP service."""
    import uvicorn

    from .main import create_app

    app = create_app(data_dir=args.data_dir)
    print(f"Starting IPA Builder API on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory that receives the generated .ipa",
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Application display name",
    )
    parser.add_argument(
        "--output-name",
        default=None,
        metavar="FILE.ipa",
        help="Output file name (default: <name>.ipa)",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="ipa-builder",
        description="Repackage zipped iOS .app bundles into installable .ipa archives",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s package Runner.app.zip --output-dir ./out --name Runner
  %(prog)s watch ~/Downloads --output-dir ./out --name Runner --output-name Runner.ipa
  %(prog)s serve --port 8085
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v: info, -vv: debug)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    parser_package = subparsers.add_parser(
        "package",
        help="Repackage one zipped .app bundle",
    )
    parser_package.add_argument("source", type=Path, help="Source .zip archive")
    _add_target_arguments(parser_package)
    parser_package.set_defaults(func=cmd_package)

    parser_watch = subparsers.add_parser(
        "watch",
        help="Watch a directory for Runner.app*.zip archives",
    )
    parser_watch.add_argument("folder", type=Path, help="Directory to watch")
    _add_target_arguments(parser_watch)
    parser_watch.set_defaults(func=cmd_watch)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Run the HTTP service",
    )
    parser_serve.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
    parser_serve.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT})")
    parser_serve.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="State and metrics directory (default: $IPABUILDER_HOME or ~/.ipabuilder)",
    )
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args.func(args)


if __name__ == "__main__":
    main()
