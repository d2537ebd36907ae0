"""
Daily engagement flag analysis and flag resolution.
"""
import logging
from datetime import date
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.utils import timezone

from .engagement import EngagementClassifier, EngagementThresholds, build_engagement_data, load_snapshot_window
from .exceptions import ContextGatheringError
from .models import EngagementFlag

logger = logging.getLogger(__name__)


def run_daily_analysis(today: Optional[date] = None,
                       thresholds: Optional[EngagementThresholds] = None) -> dict:
    """
    Classify every active member and store a flag for each match.

    Loading members and their snapshots is a single read; if it fails the
    whole run fails. After that, a failure for one member is logged and
    counted without stopping the others.

    Returns:
        Dict with 'analyzed', 'flags_created', 'failed' and a per-type
        'breakdown'.
    """
    today = today or timezone.localdate()
    classifier = EngagementClassifier(thresholds)

    try:
        members = list(get_user_model().active_members())
        window = load_snapshot_window([m.id for m in members], today)
    except DatabaseError as e:
        logger.exception("Loading activity snapshots failed")
        raise ContextGatheringError('activity_snapshots', str(e)) from e

    logger.info(f"Analyzing engagement for {len(members)} members as of {today.isoformat()}")

    breakdown = {flag_type: 0 for flag_type, _ in EngagementFlag.FLAG_TYPE_CHOICES}
    flags_created = 0
    failed = 0

    for member in members:
        try:
            with transaction.atomic():
                data = build_engagement_data(member, window.get(member.id, []), today)
                result = classifier.classify(data)
                if result is None:
                    continue
                EngagementFlag.objects.create(
                    user=member,
                    flag_type=result.flag_type,
                    reason=result.reason[:300],
                    context=result.context,
                    recommended_action=result.recommended_action,
                )
        except Exception:
            failed += 1
            logger.exception(f"Engagement analysis failed for user {member.id}")
            continue

        flags_created += 1
        breakdown[result.flag_type] += 1

    logger.info(
        f"Engagement analysis complete: {flags_created} flags "
        f"({breakdown}), {failed} failures"
    )
    return {
        'analyzed': len(members),
        'flags_created': flags_created,
        'failed': failed,
        'breakdown': breakdown,
    }


def resolve_flag(flag_id: int, resolved_by, notes: Optional[str] = None):
    """
    Resolve a flag.

    Resolving an already resolved flag keeps the original resolution.

    Returns:
        (flag, changed) where ``changed`` is False for an already resolved flag.

    Raises:
        EngagementFlag.DoesNotExist: Unknown id.
    """
    with transaction.atomic():
        flag = EngagementFlag.objects.select_for_update().get(pk=flag_id)
        changed = flag.resolve(resolved_by, notes or '')

    if changed:
        logger.info(f"Flag {flag_id} resolved by {resolved_by}")
    return flag, changed


def list_flags(flag_type: Optional[str] = None, resolved: Optional[bool] = None, limit: int = 100):
    """Flags newest first, optionally filtered by type and resolution."""
    flags = EngagementFlag.objects.select_related('user', 'resolved_by')
    if flag_type:
        flags = flags.filter(flag_type=flag_type)
    if resolved is not None:
        flags = flags.filter(resolved=resolved)
    return list(flags.order_by('-created_at', '-id')[:limit])
