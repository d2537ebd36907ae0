from django.urls import path
from . import views

urlpatterns = [
    # Scheduled triggers (Bearer CRON_SECRET)
    path('api/cron/generate-dashboard/', views.cron_generate_dashboard, name='cron_generate_dashboard'),
    path('api/cron/analyze-engagement/', views.cron_analyze_engagement, name='cron_analyze_engagement'),
    # Admin: generation
    path('api/admin/generate-content/', views.admin_generate_content, name='admin_generate_content'),
    path('api/admin/analyze-engagement/', views.admin_analyze_engagement, name='admin_analyze_engagement'),
    path('api/admin/generate-discussion-prompt/', views.admin_generate_discussion_prompt,
         name='admin_generate_discussion_prompt'),
    path('api/admin/generate-health-report/', views.admin_generate_health_report,
         name='admin_generate_health_report'),
    # Admin: content review
    path('api/admin/pending-content/', views.admin_pending_content, name='admin_pending_content'),
    path('api/admin/edit-content/', views.admin_edit_content, name='admin_edit_content'),
    path('api/admin/approve-content/', views.admin_approve_content, name='admin_approve_content'),
    # Admin: engagement flags
    path('api/admin/engagement-flags/', views.admin_engagement_flags, name='admin_engagement_flags'),
    path('api/admin/engagement-flags/resolve/', views.admin_resolve_flag, name='admin_resolve_flag'),
    # Members
    path('api/dashboard/', views.member_dashboard, name='member_dashboard'),
]
