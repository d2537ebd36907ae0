"""
Access decorators for the cron and admin endpoints.

Both checks run before the view body, so an unauthorized caller never
triggers a read or a generation run.
"""
import logging
import secrets
from functools import wraps

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def _bearer_token(request) -> str:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer':
        return ''
    return token.strip()


def require_cron_secret(view_func):
    """
    Decorator for endpoints called by the scheduler.

    Expects ``Authorization: Bearer <CRON_SECRET>``. When CRON_SECRET is not
    configured every call is rejected.

    Usage:
        @require_cron_secret
        def cron_generate_dashboard(request):
            ...
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        expected = settings.CRON_SECRET
        token = _bearer_token(request)

        if not expected or not token or not secrets.compare_digest(token.encode(), expected.encode()):
            logger.warning(f"Unauthorized cron request to {request.path}")
            return JsonResponse({'error': 'Unauthorized'}, status=401)

        return view_func(request, *args, **kwargs)

    return wrapper


def require_program_admin(view_func):
    """
    Decorator for staff endpoints: admin or super_admin role.

    Returns 401 for anonymous callers and 403 for everyone else without the
    role.

    Usage:
        @require_program_admin
        def approve_content_view(request):
            ...
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Authentication required'}, status=401)

        if not request.user.is_program_admin:
            return JsonResponse({'error': 'Admin access required'}, status=403)

        return view_func(request, *args, **kwargs)

    return wrapper
