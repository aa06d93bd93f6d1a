"""
Management command to verify cached balances against the transaction log.

Replays every group's log from empty state and compares the result with
the balances stored on the members. Exits with an error if any group does
not match.

Usage:
    python manage.py reconcile_ledgers
    python manage.py reconcile_ledgers --group <uuid> --group <uuid>
"""

from django.core.management.base import BaseCommand, CommandError
from apps.expenses.services import reconcile_all


class Command(BaseCommand):
    help = 'Replay transaction logs and check them against cached balances'

    def add_arguments(self, parser):
        parser.add_argument(
            '--group',
            action='append',
            dest='groups',
            default=[],
            help='Only reconcile this group (can be repeated)',
        )

    def handle(self, *args, **options):
        reports, failures = reconcile_all(options['groups'] or None)

        for report in reports:
            self.stdout.write(
                f"  - {report['group_id']} | {report['transactions']} transaction(s) "
                f"| written off: {report['written_off']} | version {report['version']}"
            )

        if failures:
            for group_id, message in failures.items():
                self.stderr.write(self.style.ERROR(f'  ! {group_id}: {message}'))
            raise CommandError(f'{len(failures)} group(s) failed reconciliation.')

        self.stdout.write(
            self.style.SUCCESS(f'\nReconciled {len(reports)} group(s). All balances match.')
        )
