#!/usr/bin/env python3
"""Control utility for qBittorrent manager."""

import argparse
import sys
from datetime import datetime

from .config import Config, SettingsError
from .constants import DeleteMethod
from .ledger import DownloadLedger, LedgerError
from .manager import QbtManager
from .notifier import Notifier
from .utils import truncate_name


def format_timestamp(iso_timestamp: str) -> str:
    """Format ISO timestamp to readable format."""
    try:
        dt = datetime.fromisoformat(iso_timestamp.replace('Z', '+00:00'))
        return dt.strftime('%Y-%m-%d %H:%M:%S UTC')
    except ValueError:
        return iso_timestamp


def load_config(args) -> Config:
    return Config.from_file(args.settings)


def cmd_ledger_list(args) -> int:
    """List download history entries."""
    ledger = DownloadLedger(load_config(args).ledger.path)
    entries = ledger.entries()

    if not entries:
        print("Download history is empty")
        return 0

    print(f"Download history ({len(entries)}):")
    print()

    for entry in entries:
        print(f"Link: {entry.link}")
        if entry.title:
            print(f"  Title: {entry.title}")
        if entry.added_at:
            print(f"  Added: {format_timestamp(entry.added_at)}")
        print()

    return 0


def cmd_ledger_remove(args) -> int:
    """Remove one link from the download history."""
    ledger = DownloadLedger(load_config(args).ledger.path)

    if not ledger.remove(args.link):
        print("Link not found in download history", file=sys.stderr)
        return 1
    if not ledger.save():
        print("Failed to save download history", file=sys.stderr)
        return 1

    print(f"Removed from download history: {args.link}")
    return 0


def cmd_ledger_clear(args) -> int:
    """Clear the download history."""
    ledger = DownloadLedger(load_config(args).ledger.path)

    if not args.yes:
        response = input("Are you sure you want to clear the download history? (y/N): ")
        if response.lower() not in ('y', 'yes'):
            print("Cancelled")
            return 0

    ledger.clear()
    if ledger.save():
        print("Download history cleared")
        return 0
    print("Failed to clear download history", file=sys.stderr)
    return 1


def cmd_plan(args) -> int:
    """Show what a run would do without changing anything."""
    config = load_config(args)
    manager = QbtManager(config)

    if not manager.client.connect():
        print("Failed to connect to qBittorrent", file=sys.stderr)
        return 1

    try:
        torrents = manager.client.get_torrents()
        if torrents is None:
            print("Failed to fetch torrents", file=sys.stderr)
            return 1
        result = manager.classify(torrents)
    finally:
        manager.client.disconnect()

    print(f"\n{'Action':<22} {'State':<12} {'Name':<50}")
    print("=" * 90)
    for action in result.actions:
        print(f"{action.method.label:<22} {action.torrent.state:<12} {truncate_name(action.torrent.name, 50)}")
        print(f"{'':<22} reason: {action.reason}")

    stats = result.get_action_stats()
    print(f"\nKeep: {stats['kept']}")
    for method in DeleteMethod:
        print(f"{method.label.capitalize()}: {len(result.actions_for(method))}")
    print(f"Upload limit changes: {stats['upload_limits']}")
    print(f"Share limit changes: {stats['share_limits']}")

    if not config.behavior.delete_tasks and any(
            a.method != DeleteMethod.PAUSE_TASK for a in result.actions):
        print("\nNote: deletion is disabled (deleteTasks=false); delete entries will not run")

    return 0


def cmd_notify_test(args) -> int:
    """Send a test notification."""
    notifier = Notifier(load_config(args).notifications)
    if not notifier.is_active:
        print("No notification URLs configured", file=sys.stderr)
        return 1

    success, count = notifier.test()
    if success:
        print(f"Test notification sent to {count} service(s)")
        return 0
    print("Test notification failed", file=sys.stderr)
    return 1


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog='qbt-manager-ctl',
        description='Control utility for qBittorrent manager'
    )
    parser.add_argument('-s', '--settings', help='Path to the JSON settings file')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Ledger commands
    ledger_parser = subparsers.add_parser('ledger', help='Manage RSS download history')
    ledger_subparsers = ledger_parser.add_subparsers(dest='ledger_command')

    ledger_subparsers.add_parser('list', help='List downloaded links')

    remove_parser = ledger_subparsers.add_parser('remove', help='Forget a link so it downloads again')
    remove_parser.add_argument('link', help='Feed item link')

    clear_parser = ledger_subparsers.add_parser('clear', help='Forget every link')
    clear_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')

    subparsers.add_parser('plan', help='Show actions a run would take')
    subparsers.add_parser('notify-test', help='Send a test notification')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == 'ledger':
            if args.ledger_command == 'list':
                return cmd_ledger_list(args)
            elif args.ledger_command == 'remove':
                return cmd_ledger_remove(args)
            elif args.ledger_command == 'clear':
                return cmd_ledger_clear(args)
            ledger_parser.print_help()
            return 1
        elif args.command == 'plan':
            return cmd_plan(args)
        elif args.command == 'notify-test':
            return cmd_notify_test(args)
    except (SettingsError, LedgerError) as e:
        print(str(e), file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
