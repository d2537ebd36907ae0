import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.utils.html import format_html
from django.views.decorators.http import require_GET, require_POST

from .dashboard import (
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULED,
    get_active_dashboard,
    personalize_dashboard,
    run_daily_generation,
    run_discussion_prompt_generation,
    run_health_report_generation,
)
from .exceptions import (
    ApprovalConflictError,
    CohortPipelineError,
    ContentLockedError,
    ContentValidationError,
    ContextGatheringError,
    TextGenerationError,
)
from .flags import list_flags, resolve_flag, run_daily_analysis
from .middleware import require_cron_secret, require_program_admin
from .models import DashboardContent, EngagementFlag
from .review import approve_content, edit_content, list_pending_content

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (TextGenerationError, 502),
    (ContextGatheringError, 500),
    (ContentLockedError, 409),
    (ApprovalConflictError, 409),
    (ContentValidationError, 400),
)


def _pipeline_error_response(error: CohortPipelineError) -> JsonResponse:
    status = 500
    for error_class, error_status in ERROR_STATUS:
        if isinstance(error, error_class):
            status = error_status
            break
    return JsonResponse(error.to_dict(), status=status)


def _request_data(request) -> dict:
    """JSON body for API clients, form fields for HTMX posts."""
    if request.content_type == 'application/json':
        data = json.loads(request.body or b'{}')
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        return data
    return request.POST.dict()


def _parse_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _content_to_dict(row: DashboardContent) -> dict:
    return {
        'id': row.id,
        'content_type': row.content_type,
        'content': row.content,
        'generation_context': row.generation_context,
        'approved': row.approved,
        'active': row.active,
        'state': row.state,
        'approved_by': row.approved_by_id,
        'approved_at': row.approved_at.isoformat() if row.approved_at else None,
        'generated_at': row.generated_at.isoformat(),
    }


def _flag_to_dict(flag: EngagementFlag) -> dict:
    return {
        'id': flag.id,
        'user_id': flag.user_id,
        'user_name': flag.user.full_name,
        'flag_type': flag.flag_type,
        'reason': flag.reason,
        'context': flag.context,
        'recommended_action': flag.recommended_action,
        'resolved': flag.resolved,
        'resolved_by': flag.resolved_by_id,
        'resolved_at': flag.resolved_at.isoformat() if flag.resolved_at else None,
        'resolved_notes': flag.resolved_notes,
        'created_at': flag.created_at.isoformat(),
    }


# ============================================================================
# Scheduled Triggers
# ============================================================================

@require_GET
@require_cron_secret
def cron_generate_dashboard(request):
    """Daily dashboard generation, called by the scheduler."""
    try:
        content_id = run_daily_generation(trigger=TRIGGER_SCHEDULED)
    except CohortPipelineError as e:
        logger.exception("Scheduled dashboard generation failed")
        return _pipeline_error_response(e)

    return JsonResponse({
        'success': True,
        'content_id': content_id,
        'message': 'Dashboard content generated and awaiting approval',
    })


@require_GET
@require_cron_secret
def cron_analyze_engagement(request):
    """Daily engagement analysis, called by the scheduler."""
    try:
        summary = run_daily_analysis()
    except CohortPipelineError as e:
        logger.exception("Scheduled engagement analysis failed")
        return _pipeline_error_response(e)

    return JsonResponse({'success': True, **summary})


# ============================================================================
# Admin: Generation
# ============================================================================

@require_program_admin
@require_POST
def admin_generate_content(request):
    """Run dashboard generation now."""
    try:
        content_id = run_daily_generation(trigger=TRIGGER_MANUAL, triggered_by=request.user)
    except CohortPipelineError as e:
        logger.exception(f"Manual dashboard generation by {request.user} failed")
        return _pipeline_error_response(e)

    return JsonResponse({
        'success': True,
        'content_id': content_id,
        'message': 'Dashboard content generated and awaiting approval',
    })


@require_program_admin
@require_POST
def admin_analyze_engagement(request):
    """Run engagement analysis now."""
    try:
        summary = run_daily_analysis()
    except CohortPipelineError as e:
        logger.exception(f"Manual engagement analysis by {request.user} failed")
        return _pipeline_error_response(e)

    return JsonResponse({'success': True, **summary})


@require_program_admin
@require_POST
def admin_generate_discussion_prompt(request):
    try:
        content_id = run_discussion_prompt_generation(triggered_by=request.user)
    except CohortPipelineError as e:
        logger.exception(f"Discussion prompt generation by {request.user} failed")
        return _pipeline_error_response(e)

    return JsonResponse({'success': True, 'content_id': content_id})


@require_program_admin
@require_POST
def admin_generate_health_report(request):
    """Draft this week's cohort health report for the facilitator."""
    try:
        content_id = run_health_report_generation(triggered_by=request.user)
    except CohortPipelineError as e:
        logger.exception(f"Health report generation by {request.user} failed")
        return _pipeline_error_response(e)

    return JsonResponse({
        'success': True,
        'content_id': content_id,
        'message': 'Health report generated and awaiting approval',
    })


# ============================================================================
# Admin: Content Review
# ============================================================================

@require_program_admin
@require_GET
def admin_pending_content(request):
    """Drafts waiting for review, newest first."""
    limit = _parse_id(request.GET.get('limit')) or 10
    rows = list_pending_content(limit=min(limit, 50))
    return JsonResponse({'content': [_content_to_dict(row) for row in rows]})


@require_program_admin
@require_POST
def admin_edit_content(request):
    """Replace the body of an unapproved draft."""
    try:
        data = _request_data(request)
    except ValueError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    content_id = _parse_id(data.get('content_id'))
    if content_id is None:
        return JsonResponse({'error': 'content_id is required'}, status=400)
    if 'content' not in data:
        return JsonResponse({'error': 'content is required'}, status=400)

    try:
        row = edit_content(content_id, data['content'], edited_by=request.user)
    except DashboardContent.DoesNotExist:
        return JsonResponse({'error': 'Content not found'}, status=404)
    except CohortPipelineError as e:
        return _pipeline_error_response(e)

    return JsonResponse({'success': True, 'content': _content_to_dict(row)})


@require_program_admin
@require_POST
def admin_approve_content(request):
    """Approve a draft and make it the active content for its type."""
    try:
        data = _request_data(request)
    except ValueError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    content_id = _parse_id(data.get('content_id'))
    if content_id is None:
        return JsonResponse({'error': 'content_id is required'}, status=400)

    try:
        row = approve_content(content_id, approved_by=request.user)
    except DashboardContent.DoesNotExist:
        return JsonResponse({'error': 'Content not found'}, status=404)
    except ApprovalConflictError as e:
        return _pipeline_error_response(e)

    if request.htmx:
        return HttpResponse(format_html(
            '<span class="content-state content-state-active">Approved and live ({})</span>',
            row.get_content_type_display(),
        ))

    return JsonResponse({'success': True, 'content': _content_to_dict(row)})


# ============================================================================
# Admin: Engagement Flags
# ============================================================================

@require_program_admin
@require_GET
def admin_engagement_flags(request):
    """List flags, filtered by ?type= and ?resolved=."""
    flag_type = request.GET.get('type') or None
    if flag_type and flag_type not in dict(EngagementFlag.FLAG_TYPE_CHOICES):
        return JsonResponse({'error': f'Unknown flag type: {flag_type}'}, status=400)

    resolved_param = (request.GET.get('resolved') or '').lower()
    if resolved_param in ('', 'all'):
        resolved = None
    elif resolved_param in ('true', '1'):
        resolved = True
    elif resolved_param in ('false', '0'):
        resolved = False
    else:
        return JsonResponse({'error': 'resolved must be true or false'}, status=400)

    flags = list_flags(flag_type=flag_type, resolved=resolved)
    return JsonResponse({'flags': [_flag_to_dict(flag) for flag in flags]})


@require_program_admin
@require_POST
def admin_resolve_flag(request):
    """Mark a flag as handled."""
    try:
        data = _request_data(request)
    except ValueError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)

    flag_id = _parse_id(data.get('flag_id'))
    if flag_id is None:
        return JsonResponse({'error': 'flag_id is required'}, status=400)

    try:
        flag, changed = resolve_flag(flag_id, resolved_by=request.user, notes=data.get('notes'))
    except EngagementFlag.DoesNotExist:
        return JsonResponse({'error': 'Flag not found'}, status=404)

    if request.htmx:
        return HttpResponse(format_html(
            '<span class="flag-resolved">Resolved by {}</span>',
            flag.resolved_by.full_name if flag.resolved_by else 'staff',
        ))

    return JsonResponse({
        'success': True,
        'already_resolved': not changed,
        'flag': _flag_to_dict(flag),
    })


# ============================================================================
# Member Dashboard
# ============================================================================

@login_required
@require_GET
def member_dashboard(request):
    """The active dashboard as the logged-in member sees it."""
    row = get_active_dashboard()
    if row is None:
        return JsonResponse({'error': 'No dashboard content is active yet'}, status=404)

    return JsonResponse({
        'content_id': row.id,
        'approved_at': row.approved_at.isoformat() if row.approved_at else None,
        'dashboard': personalize_dashboard(row.content, request.user),
    })
