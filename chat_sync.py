#!/usr/bin/env python3
"""
Chat Transcript Sync - Main CLI Entry Point

This script provides the command-line interface for exporting chat
conversations to Markdown files, one document per conversation, with
deduplication across runs and optional auto-sync of the active conversation.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from config_loader import ConfigLoader, get_nested
from logger import log_config, log_section, setup_logging
from models import ProgressEvent
from orchestrator import Action, ExportReport, Request, RequestDispatcher, Response, SyncSession

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Export chat conversations to Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export every conversation not exported yet
  chat-sync --config config.yaml export-all

  # Preview what a batch export would do
  chat-sync --snapshot-dir ./saved-pages export-all --dry-run

  # Export one conversation
  chat-sync --conversation 3f2a9c1e export-current

  # Re-export the open conversation whenever it grows
  chat-sync --conversation 3f2a9c1e watch

  # Forget what was exported
  chat-sync clear-tracking

  # Verbose logging
  chat-sync -vv export-all
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration YAML file'
    )

    parser.add_argument(
        '--snapshot-dir',
        type=str,
        help='Directory of saved chat pages (overrides host.snapshot_directory)'
    )

    parser.add_argument(
        '--conversation',
        type=str,
        help='Conversation id to open on startup'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Base output directory for exported documents'
    )

    parser.add_argument(
        '--state-file',
        type=str,
        help='JSON file holding export tracking state'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Where to write the JSON report of a batch export'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also log to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True, metavar='COMMAND')

    export_all = subparsers.add_parser('export-all', help='Export every conversation in the sidebar')
    export_all.add_argument(
        '--dry-run',
        action='store_true',
        help='List what would be exported without navigating'
    )

    subparsers.add_parser('export-current', help='Export the open conversation')

    list_parser = subparsers.add_parser('list', help='List conversations in the sidebar')
    list_parser.add_argument(
        '--all',
        action='store_true',
        help='Load the whole sidebar before listing'
    )

    subparsers.add_parser('load', help='Load the whole sidebar and print the conversation count')

    watch = subparsers.add_parser('watch', help='Enable auto-sync and watch the open conversation')
    watch.add_argument(
        '--duration',
        type=float,
        help='Stop watching after this many seconds (default: until interrupted)'
    )
    watch.add_argument(
        '--disable',
        action='store_true',
        help='Disable auto-sync and exit'
    )

    subparsers.add_parser('status', help='Show auto-sync state and the open conversation')
    subparsers.add_parser('exported', help='List exported conversation ids')
    subparsers.add_parser('clear-tracking', help='Forget all exported conversation ids')

    return parser


def print_progress(event: ProgressEvent) -> None:
    """Print a batch progress event."""
    if event.total:
        print(f"[{event.current}/{event.total}] {event.status.value}: {event.title}")
    else:
        print(f"{event.status.value}: {event.title}")


def _print_error(response: Response) -> None:
    print(f"ERROR: {response.error}", file=sys.stderr)


async def run_export_all(dispatcher: RequestDispatcher, config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute a batch export and report the outcome."""
    session = dispatcher.session

    if args.dry_run:
        await session.load_all_conversations()
        conversations = session.list_conversations()
        exported = set(session.exported())
        pending = [link for link in conversations if link.id not in exported]

        print("\n" + "=" * 60)
        print("EXPORT PREVIEW (DRY RUN)")
        print("=" * 60)
        print(f"\nConversations: {len(conversations)}")
        print(f"Already exported: {len(conversations) - len(pending)}")
        print(f"To export: {len(pending)}")
        print("-" * 60)
        for link in pending:
            print(f"  {link.id}: {link.title}")
        print("\n" + "=" * 60)
        return 0

    response = await dispatcher.dispatch(Request(Action.EXPORT_ALL, progress_sink=print_progress))
    if not response.success:
        _print_error(response)
        return 1

    orchestrator = session.orchestrator
    report_generator = ExportReport(logger)
    report = report_generator.generate_report(
        orchestrator.last_result,
        orchestrator.last_duration,
        export_directory=str(getattr(session.sink, 'export_directory', '')) or None,
        exported_files=getattr(session.sink, 'exported_files', None)
    )
    print("\n" + report_generator.format_console_report(report))

    report_path = get_nested(config, 'report.path')
    if report_path:
        report_generator.export_json_report(report, report_path)

    results = response.data['results']
    if results['failed'] > 0:
        logger.warning(f"Export completed with {results['failed']} failures")
        return 1
    if results['cancelled']:
        return 130

    logger.info("Export completed successfully")
    return 0


async def run_watch(dispatcher: RequestDispatcher, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Enable auto-sync and keep the event loop alive while the watcher runs."""
    if args.disable:
        response = await dispatcher.dispatch(Request(Action.DISABLE_AUTO_SYNC))
        print("Auto-sync disabled" if response.success else f"ERROR: {response.error}")
        return 0 if response.success else 1

    response = await dispatcher.dispatch(Request(Action.ENABLE_AUTO_SYNC))
    if not response.success:
        _print_error(response)
        return 1

    print("Auto-sync enabled, watching for new messages (Ctrl+C to stop)")
    loop = asyncio.get_running_loop()
    deadline: Optional[float] = loop.time() + args.duration if args.duration else None
    while deadline is None or loop.time() < deadline:
        await asyncio.sleep(1.0)

    watcher = dispatcher.session.watcher
    exported = sum(1 for outcome in watcher.outcomes if outcome.success)
    print(f"Auto-sync exported {exported} time(s)")
    return 0


async def run_command(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Build the session and run one command."""
    session = SyncSession.from_config(config, logger)
    dispatcher = RequestDispatcher(session, logger)

    try:
        if args.command == 'export-all':
            return await run_export_all(dispatcher, config, args, logger)

        if args.command == 'watch':
            await session.start()
            return await run_watch(dispatcher, args, logger)

        if args.command == 'export-current':
            response = await dispatcher.dispatch(Request(Action.EXPORT_CURRENT))
            if not response.success:
                _print_error(response)
                return 1
            print(f"Exported '{response.data['title']}' to {response.data['handle']}")
            return 0

        if args.command == 'list':
            if args.all:
                await dispatcher.dispatch(Request(Action.LOAD_ALL_CONVERSATIONS))
            response = await dispatcher.dispatch(Request(Action.GET_CONVERSATION_LIST))
            for conversation in response.data.get('conversations', []):
                print(f"{conversation['id']}\t{conversation['title']}")
            return 0 if response.success else 1

        if args.command == 'load':
            response = await dispatcher.dispatch(Request(Action.LOAD_ALL_CONVERSATIONS))
            if not response.success:
                _print_error(response)
                return 1
            print(f"Loaded {response.data['count']} conversations")
            return 0

        if args.command == 'status':
            response = await dispatcher.dispatch(Request(Action.GET_STATUS))
            for key, value in response.data.items():
                print(f"{key}: {value}")
            return 0 if response.success else 1

        if args.command == 'exported':
            response = await dispatcher.dispatch(Request(Action.GET_EXPORTED))
            if not response.success:
                _print_error(response)
                return 1
            for conversation_id in response.data['exported']:
                print(conversation_id)
            print(f"{response.data['count']} conversations exported")
            return 0

        if args.command == 'clear-tracking':
            response = await dispatcher.dispatch(Request(Action.CLEAR_EXPORTED))
            if not response.success:
                _print_error(response)
                return 1
            print("Export tracking cleared")
            return 0

        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await session.close()


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('chat_transcript_sync')

        log_section("Chat Transcript Sync")
        logger.info(f"Version: {__version__}")

        config = {}
        if args.config:
            logger.info(f"Loading configuration from {args.config}")
            config = ConfigLoader.load(args.config)

        # CLI takes precedence
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        # Reconfigure logging with config file settings
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        return asyncio.run(run_command(config, args, logger))

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
