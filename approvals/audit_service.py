"""
Audit ledger for the approval workflow.

Every submit/approve/reject appends exactly one entry. Entries are never edited
or deleted; the transaction reference on each entry comes from a monotonic
sequence so references sort in creation order.
"""
import io
import logging

import pandas as pd
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .models import AuditLog, LedgerSequence
from .roles import Role

logger = logging.getLogger(__name__)

SEQUENCE_NAME = 'audit_ledger'

# Category filter -> substring expected in the action label
CATEGORY_MARKERS = {
    'submitted': 'Submitted',
    'approved': 'Approved',
    'rejected': 'Rejected',
}

EXPORT_COLUMNS = ['Timestamp', 'Action', 'User', 'Role', 'Result', 'Transaction', 'Details']


class AuditLedger:
    """Append-only record of workflow actions"""

    def next_reference(self):
        """
        Reserve the next transaction reference, e.g. 'TX-0000000042'.
        Must run inside the caller's transaction so a rolled back action
        does not consume a number.
        """
        prefix = getattr(settings, 'RMS_TRANSACTION_PREFIX', 'TX')
        with transaction.atomic():
            sequence, _ = LedgerSequence.objects.select_for_update().get_or_create(name=SEQUENCE_NAME)
            sequence.value += 1
            sequence.save(update_fields=['value'])
        return f"{prefix}-{sequence.value:010d}"

    def append(self, action, user, user_name, role, details, result=None,
               level='INFO', timestamp=None, reference=None):
        """
        Append one entry to the ledger

        Args:
            action: Label such as 'Result Approved by HOD'
            user: User who performed the action
            user_name: Display name at the time of the action
            role: Role the user acted in
            details: Human readable summary
            result: StudentResult the action applies to
            level: INFO for normal actions, WARNING for rejections
            timestamp: Defaults to now
            reference: Pre-reserved transaction reference, reserved here if omitted
        """
        entry = AuditLog.objects.create(
            action=action,
            user=user,
            user_name=user_name,
            role=Role(role),
            result=result,
            timestamp=timestamp or timezone.now(),
            transaction_hash=reference or self.next_reference(),
            details=details,
            level=level,
        )
        logger.info(f"Audit entry {entry.transaction_hash}: {action} by {user_name}")
        return entry

    def list(self, search=None, category=None, newest_first=True):
        """
        Ledger entries filtered and sorted for display

        Args:
            search: Case-insensitive text matched against action, user name and details
            category: 'submitted', 'approved', 'rejected' or 'all'/None
            newest_first: Sort by timestamp descending (default) or ascending
        """
        entries = AuditLog.objects.select_related('user', 'result')

        if search:
            entries = entries.filter(
                Q(action__icontains=search) |
                Q(user_name__icontains=search) |
                Q(details__icontains=search)
            )

        if category and category != 'all':
            marker = CATEGORY_MARKERS.get(category)
            if marker is None:
                raise ValueError(f"Unknown audit category: {category}")
            entries = entries.filter(action__contains=marker)

        if newest_first:
            return entries.order_by('-timestamp', '-id')
        return entries.order_by('timestamp', 'id')

    def for_result(self, result):
        """History of one result in creation order"""
        return AuditLog.objects.filter(result=result).order_by('id')

    def to_dataframe(self, entries):
        rows = [{
            'Timestamp': entry.timestamp.isoformat(),
            'Action': entry.action,
            'User': entry.user_name,
            'Role': entry.get_role_display(),
            'Result': entry.result_id or '',
            'Transaction': entry.transaction_hash,
            'Details': entry.details,
        } for entry in entries]
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    def export_csv(self, entries):
        return self.to_dataframe(entries).to_csv(index=False)

    def export_excel(self, entries, sheet_name='Audit Log'):
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine='openpyxl') as writer:
            self.to_dataframe(entries).to_excel(writer, sheet_name=sheet_name, index=False)
        return output.getvalue()
