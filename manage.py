#!/usr/bin/env python3
"""
Management script for the relay bot.
Provides a CLI for inspecting pairing state, profiles and the database.
"""
import asyncio
import argparse
import sys

from relaybot.config import get_settings
from relaybot.management import AdminCommands


async def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Relay Bot Management CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Pairing state commands
    state_parser = subparsers.add_parser('state', help='Pairing state commands')
    state_subparsers = state_parser.add_subparsers(dest='state_action')

    state_subparsers.add_parser('stats', help='Show queue size and active pairs')
    state_subparsers.add_parser('queue', help='List waiting participants')

    partner_parser = state_subparsers.add_parser('partner', help='Show the partner of a participant')
    partner_parser.add_argument('participant_id', type=int, help='Telegram user ID')

    release_parser = state_subparsers.add_parser('release', help='Force-release a participant and their partner')
    release_parser.add_argument('participant_id', type=int, help='Telegram user ID')

    # Profile commands
    profile_parser = subparsers.add_parser('profile', help='Participant profile commands')
    profile_subparsers = profile_parser.add_subparsers(dest='profile_action')

    show_parser = profile_subparsers.add_parser('show', help='Show a participant profile')
    show_parser.add_argument('user_id', type=int, help='Telegram user ID')

    # Database commands
    db_parser = subparsers.add_parser('db', help='Database commands')
    db_subparsers = db_parser.add_subparsers(dest='db_action')
    db_subparsers.add_parser('init', help='Create database tables')

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    admin_commands = AdminCommands(get_settings())

    try:
        if args.command == 'state':
            return await handle_state_commands(admin_commands, args)
        elif args.command == 'profile':
            return await handle_profile_commands(admin_commands, args)
        elif args.command == 'db':
            return await handle_db_commands(admin_commands, args)
        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\n⏹️  Operation cancelled by user")
        return 1


def _report(result) -> int:
    if result['success']:
        if 'message' in result:
            print(f"✅ {result['message']}")
        return 0
    print(f"❌ {result.get('error', 'Unknown error')}")
    return 1


async def handle_state_commands(admin_commands: AdminCommands, args) -> int:
    """Handle pairing state commands."""
    if admin_commands.settings.state_backend == 'memory':
        print("⚠️  The memory backend is private to the running bot; these commands see an empty store.")

    if args.state_action == 'stats':
        print("📊 Reading pairing statistics...")
        result = await admin_commands.state_stats()
        if result['success']:
            print(f"   Waiting in queue: {result['stats']['queue_size']}")
            print(f"   Active pairs: {result['stats']['active_pairs']}")
        return _report(result)

    elif args.state_action == 'queue':
        result = await admin_commands.state_queue()
        if result['success']:
            print(f"Found {len(result['queue'])} waiting participants:")
            for participant_id in result['queue']:
                print(f"   - {participant_id}")
        return _report(result)

    elif args.state_action == 'partner':
        result = await admin_commands.state_partner(args.participant_id)
        if result['success']:
            partner = result['partner_id']
            print(f"   {args.participant_id} -> {partner if partner is not None else 'no partner'}")
        return _report(result)

    elif args.state_action == 'release':
        print(f"🔓 Releasing participant {args.participant_id}...")
        return _report(await admin_commands.state_release(args.participant_id))

    print("Usage: manage.py state {stats,queue,partner,release}")
    return 1


async def handle_profile_commands(admin_commands: AdminCommands, args) -> int:
    """Handle profile commands."""
    if args.profile_action == 'show':
        result = await admin_commands.show_profile(args.user_id)
        if result['success']:
            for key, value in result['profile'].items():
                print(f"   {key}: {value}")
        return _report(result)

    print("Usage: manage.py profile show <user_id>")
    return 1


async def handle_db_commands(admin_commands: AdminCommands, args) -> int:
    """Handle database commands."""
    if args.db_action == 'init':
        print("🗄️  Creating database tables...")
        return _report(await admin_commands.init_database())

    print("Usage: manage.py db init")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
