"""
Ledger services for the Django side.

``build_ledger_service`` wires the pure ``LedgerService`` to the database
store, the request user and the LEDGER_* settings. The batch helpers are
used by the management commands.

Example::

    from apps.expenses.services import build_ledger_service

    service = build_ledger_service(request.user)
    result = service.add_expense(
        group_id=str(group.id),
        amount=30000,
        paid_by=str(member.id),
        participant_ids=[str(m.id) for m in members],
    )
"""

import logging
import uuid
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.groups.models import Group
from apps.ledger.engine import DEFAULT_MAX_AMOUNT, LedgerService
from apps.ledger.exceptions import LedgerConsistencyError

from .store import DjangoLedgerStore

logger = logging.getLogger(__name__)


def _new_id():
    return str(uuid.uuid4())


def build_ledger_service(user=None) -> LedgerService:
    """
    Build a LedgerService acting as ``user``.

    Args:
        user (User, optional): Authenticated user. ``None`` builds a system
            service without membership checks (cleanup, reconcile).

    Returns:
        LedgerService: Service backed by DjangoLedgerStore.
    """
    return LedgerService(
        DjangoLedgerStore(acting_user=user),
        current_user_id=user.id if user is not None else None,
        clock=timezone.now,
        expense_window=timedelta(
            seconds=getattr(settings, 'LEDGER_EXPENSE_DUPLICATE_WINDOW_SECONDS', 300)
        ),
        payment_window=timedelta(
            seconds=getattr(settings, 'LEDGER_PAYMENT_DUPLICATE_WINDOW_SECONDS', 120)
        ),
        max_amount=getattr(settings, 'LEDGER_MAX_AMOUNT', DEFAULT_MAX_AMOUNT),
        id_factory=_new_id,
    )


def reconcile_all(group_ids=None):
    """
    Reconcile every group (or the given ones).

    Returns:
        tuple: ``(reports, failures)`` where ``reports`` are the successful
        reconcile dicts and ``failures`` maps group id to the consistency
        error message.
    """
    service = build_ledger_service()
    queryset = Group.objects.order_by('created_at')
    if group_ids:
        queryset = queryset.filter(id__in=group_ids)

    reports = []
    failures = {}
    for group_id in queryset.values_list('id', flat=True):
        try:
            result = service.reconcile(str(group_id))
        except LedgerConsistencyError as e:
            failures[str(group_id)] = str(e)
            continue
        if result.ok:
            reports.append(result.value)
        else:
            failures[str(group_id)] = result.message
    return reports, failures


def temporary_member_groups():
    """Ids of groups that have at least one active temporary member."""
    return list(
        Group.objects
        .filter(members__is_temporary=True, members__removed_at__isnull=True)
        .order_by()
        .values_list('id', flat=True)
        .distinct()
    )


def cleanup_all():
    """
    Run temporary-member cleanup for every group that has temporary members.

    Returns:
        dict: group id -> list of removed member ids (only non-empty entries).
    """
    service = build_ledger_service()
    removed = {}
    for group_id in temporary_member_groups():
        result = service.cleanup_temporary_members(str(group_id))
        if not result.ok:
            logger.warning('Cleanup of group %s failed: %s', group_id, result.message)
            continue
        if result.value:
            removed[str(group_id)] = result.value
    return removed
