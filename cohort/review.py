"""
Review workflow for generated content.

draft (approved=False, active=False)
    -> edit_content (any number of times)
    -> approve_content -> active (approved=True, active=True)

Approving a row deactivates whichever row of the same type was active, so at
most one row per content type is ever visible.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import ApprovalConflictError, ContentLockedError
from .models import DashboardContent
from .schemas import validate_content

logger = logging.getLogger(__name__)


def edit_content(content_id: int, new_body, edited_by=None) -> DashboardContent:
    """
    Replace the body of an unapproved draft.

    Raises:
        DashboardContent.DoesNotExist: Unknown id.
        ContentLockedError: The row was already approved.
        ContentValidationError: The body does not fit the row's content type.
    """
    with transaction.atomic():
        row = DashboardContent.objects.select_for_update().get(pk=content_id)
        if row.approved:
            raise ContentLockedError(f"Content {content_id} is approved and can no longer be edited")

        row.content = validate_content(row.content_type, new_body)
        row.save(update_fields=['content', 'updated_at'])

    logger.info(f"Content {content_id} edited by {edited_by or 'system'}")
    return row


def approve_content(content_id: int, approved_by) -> DashboardContent:
    """
    Approve a row and make it the active content for its type.

    Approving the row that is already active is a no-op apart from the
    approval metadata.

    Raises:
        DashboardContent.DoesNotExist: Unknown id.
        ApprovalConflictError: Another approval of the same type committed first.
    """
    try:
        with transaction.atomic():
            row = DashboardContent.objects.select_for_update().get(pk=content_id)

            # Deactivate first; the partial unique index allows one active row per type
            superseded = list(
                DashboardContent.objects.select_for_update()
                .filter(content_type=row.content_type, active=True)
                .exclude(pk=row.pk)
                .values_list('pk', flat=True)
            )
            if superseded:
                DashboardContent.objects.filter(pk__in=superseded).update(
                    active=False, updated_at=timezone.now()
                )

            row.approved = True
            row.active = True
            row.approved_by = approved_by
            row.approved_at = timezone.now()
            row.save(update_fields=['approved', 'active', 'approved_by', 'approved_at', 'updated_at'])
    except IntegrityError as e:
        logger.warning(f"Approval of content {content_id} lost a race: {e}")
        raise ApprovalConflictError(
            f"Content {content_id} could not be activated because another approval "
            f"of the same type committed first"
        ) from e

    logger.info(
        f"Content {content_id} ({row.content_type}) approved by {approved_by}; "
        f"superseded {superseded or 'nothing'}"
    )
    return row


def list_pending_content(limit: int = 10) -> list:
    """Unapproved drafts, newest first."""
    return list(DashboardContent.get_pending(limit))
