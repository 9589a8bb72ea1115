"""Reports module for the moderation queue.

Any authenticated user can report a listing, user or review. Admins list
reports and mark them reviewed.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any

from auth.policy import authorize
from store import RecordStore, keys
from .analytics import get_analytics

logger = logging.getLogger(__name__)

REPORT_STATUSES = ('pending', 'reviewed')
TARGET_TYPES = ('listing', 'user', 'review')

class ReportError(Exception):
    """Base class for report-related errors."""
    pass

class ReportNotFoundError(ReportError, LookupError):
    """Raised when a report is not found."""
    pass

def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()

class ReportManager:
    """Manages reports and their moderation."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create_report(
        self,
        actor: Dict[str, Any],
        target_type: str,
        target_id: str,
        reason: str
    ) -> Dict[str, Any]:
        """File a report against a listing, user or review.

        Raises:
            ReportError: If the target type is unknown or a field is empty
        """
        if target_type not in TARGET_TYPES:
            raise ReportError(f"Target type must be one of: {', '.join(TARGET_TYPES)}")
        if not target_id:
            raise ReportError("Target id is required")
        if not (reason or '').strip():
            raise ReportError("Reason is required")

        report_id = str(uuid.uuid4())
        report = {
            'id': report_id,
            'reporter_id': actor['id'],
            'target_type': target_type,
            'target_id': target_id,
            'reason': reason.strip(),
            'status': 'pending',
            'created_at': utcnow(),
        }
        await self.store.set(keys.report(report_id), report)

        logger.info(f"Report {report_id} filed against {target_type} {target_id}")
        return report

    async def list_reports(self, actor: Dict[str, Any], status: Optional[str] = None) -> List[Dict[str, Any]]:
        """All reports, newest first, optionally filtered by status. Admin only."""
        authorize('report:list', actor)
        if status and status not in REPORT_STATUSES:
            raise ReportError(f"Status must be one of: {', '.join(REPORT_STATUSES)}")

        reports = await self.store.scan_records(keys.REPORTS)
        if status:
            reports = [report for report in reports if report.get('status') == status]
        reports.sort(key=lambda report: report.get('created_at') or '', reverse=True)
        return reports

    async def review_report(self, actor: Dict[str, Any], report_id: str) -> Dict[str, Any]:
        """Mark a report as reviewed. Admin only.

        Raises:
            PermissionDeniedError: If the caller is not an admin
            ReportNotFoundError: If the report doesn't exist
            ReportError: If the report was already reviewed
        """
        authorize('report:review', actor)

        report = await self.store.get(keys.report(report_id))
        if not report:
            raise ReportNotFoundError("Report not found")
        if report['status'] == 'reviewed':
            raise ReportError("Report has already been reviewed")

        report['status'] = 'reviewed'
        report['reviewed_by'] = actor['id']
        report['reviewed_at'] = utcnow()
        await self.store.set(keys.report(report_id), report)

        logger.info(f"Report {report_id} reviewed by {actor['id']}")
        return report

# Export public interface
__all__ = [
    'ReportManager',
    'get_analytics',
    'ReportError',
    'ReportNotFoundError',
    'REPORT_STATUSES',
    'TARGET_TYPES'
]
