"""
Django management command to set the active user and store.
"""

import json

from django.core.management.base import BaseCommand, CommandError

from jewelsync import preferences


class Command(BaseCommand):
    help = "Set (or show) the user and store that backups and restores run as"

    def add_arguments(self, parser):
        parser.add_argument("--user-id", help="Current user id")
        parser.add_argument("--store-id", help="Current store id")
        parser.add_argument(
            "--mobile",
            help="User mobile number; names the remote backup folder (defaults to the user id)",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    def handle(self, *args, **options):
        changing = any(options[key] is not None for key in ("user_id", "store_id", "mobile"))

        try:
            if changing:
                identity = preferences.set_identity(
                    user_id=options["user_id"],
                    store_id=options["store_id"],
                    user_mobile=options["mobile"],
                )
            else:
                identity = preferences.get_identity()
            last_sync, device = preferences.get_last_sync()
        except preferences.PreferencesError as e:
            raise CommandError(str(e))

        if options["json"]:
            data = dict(identity)
            data["last_sync_at"] = last_sync.isoformat() if last_sync else None
            data["last_sync_device"] = device
            self.stdout.write(json.dumps(data, indent=2))
            return

        if changing:
            self.stdout.write(self.style.SUCCESS("✓ Identity updated"))
        self.stdout.write(f"  User:   {identity['current_user_id'] or '-'}")
        self.stdout.write(f"  Store:  {identity['current_store_id'] or '-'}")
        self.stdout.write(f"  Mobile: {identity['user_mobile'] or '-'}")
        if last_sync:
            self.stdout.write(f"  Last sync: {last_sync:%Y-%m-%d %H:%M} ({device or 'unknown device'})")
        else:
            self.stdout.write("  Last sync: never")
