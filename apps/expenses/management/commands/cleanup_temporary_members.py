"""
Management command to remove temporary members that are due for deletion.

Members with the "time limit" condition are removed once they expire;
members with the "settled" condition are removed once their balance is zero.
Meant to run periodically (cron).

Usage:
    python manage.py cleanup_temporary_members
    python manage.py cleanup_temporary_members --dry-run
"""

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from apps.expenses.services import cleanup_all
from apps.groups.models import DeletionCondition, GroupMember


class Command(BaseCommand):
    help = 'Remove expired or settled temporary group members'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show which members would be removed without making changes',
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            due = (
                GroupMember.objects
                .filter(is_temporary=True, removed_at__isnull=True)
                .filter(
                    Q(deletion_condition=DeletionCondition.TIME_LIMIT, expires_at__lte=timezone.now())
                    | Q(deletion_condition=DeletionCondition.SETTLED, balance=0)
                )
                .select_related('group')
            )
            count = due.count()
            if count == 0:
                self.stdout.write(self.style.SUCCESS('No temporary members are due for removal.'))
                return
            self.stdout.write(f'\nFound {count} temporary member(s) due for removal:\n')
            for member in due:
                self.stdout.write(f'  - {member.name} | {member.group.name} | balance {member.balance}')
            self.stdout.write(self.style.WARNING('\n--dry-run mode: No changes made.'))
            return

        removed = cleanup_all()
        total = sum(len(ids) for ids in removed.values())
        if total == 0:
            self.stdout.write(self.style.SUCCESS('No temporary members are due for removal.'))
            return

        for group_id, member_ids in removed.items():
            self.stdout.write(f'  - group {group_id}: removed {len(member_ids)} member(s)')
        self.stdout.write(
            self.style.SUCCESS(f'\nRemoved {total} temporary member(s).')
        )
