from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


# =============================================================================
# Program & Community Models
# =============================================================================

class ProgramSetting(models.Model):
    """
    Key/value program state maintained by staff (current week, current module).

    Values are JSON objects, e.g. ``current_week -> {"week": 3}`` and
    ``current_module -> {"title": "...", "module_id": "..."}``.
    """
    setting_key = models.CharField(max_length=100, unique=True)
    setting_value = models.JSONField(default=dict, blank=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='updated_program_settings'
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['setting_key']

    def __str__(self):
        return self.setting_key


class DiscussionThread(models.Model):
    """A discussion started by a cohort member."""
    title = models.CharField(max_length=300)
    content_html = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='discussion_threads'
    )
    views_count = models.PositiveIntegerField(default=0)
    last_activity_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class DiscussionPost(models.Model):
    """A reply within a discussion thread."""
    thread = models.ForeignKey(
        DiscussionThread,
        on_delete=models.CASCADE,
        related_name='posts'
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='discussion_posts'
    )
    content = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"Reply by {self.author} on {self.thread}"


class Event(models.Model):
    """A scheduled live session or gathering."""
    title = models.CharField(max_length=200)
    start_time = models.DateTimeField(db_index=True)
    location = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['start_time']

    def __str__(self):
        return self.title


# =============================================================================
# Engagement Models
# =============================================================================

class UserActivitySnapshot(models.Model):
    """
    One day of aggregated activity counters for one member.

    Written by the activity tracking side of the platform; the analysis
    pipeline only ever reads these rows.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='activity_snapshots'
    )
    snapshot_date = models.DateField(db_index=True)
    logins_count = models.PositiveIntegerField(default=0)
    posts_count = models.PositiveIntegerField(default=0)
    responses_count = models.PositiveIntegerField(default=0)
    modules_completed = models.PositiveIntegerField(default=0)
    last_login = models.DateTimeField(null=True, blank=True)
    last_partner_interaction = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-snapshot_date']
        verbose_name = 'User Activity Snapshot'
        verbose_name_plural = 'User Activity Snapshots'
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'snapshot_date'],
                name='unique_snapshot_per_user_per_day'
            ),
        ]

    def __str__(self):
        return f"{self.user} - {self.snapshot_date.isoformat()}"


class EngagementFlag(models.Model):
    """
    A red/yellow/green signal about a member's engagement trajectory.

    Flags are append-only observations: the daily analysis creates a new row
    each time a rule matches, and staff close them with ``resolve``. A
    resolved flag is never modified again.
    """
    FLAG_RED = 'red'
    FLAG_YELLOW = 'yellow'
    FLAG_GREEN = 'green'

    FLAG_TYPE_CHOICES = [
        (FLAG_RED, 'Red - Needs Attention'),
        (FLAG_YELLOW, 'Yellow - Monitor'),
        (FLAG_GREEN, 'Green - Celebrate'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='engagement_flags',
        help_text='The member this flag is about'
    )
    flag_type = models.CharField(
        max_length=10,
        choices=FLAG_TYPE_CHOICES,
        db_index=True
    )
    reason = models.CharField(
        max_length=300,
        help_text='Short justification built from the weekly deltas'
    )
    context = models.JSONField(
        default=dict,
        blank=True,
        help_text='Raw weekly counts that justified the flag'
    )
    recommended_action = models.TextField(blank=True)

    resolved = models.BooleanField(default=False, db_index=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_engagement_flags'
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Engagement Flag'
        verbose_name_plural = 'Engagement Flags'
        indexes = [
            models.Index(fields=['flag_type', 'resolved'], name='flag_type_resolved_idx'),
        ]

    def __str__(self):
        return f"{self.get_flag_type_display()} - {self.user}"

    def resolve(self, user, notes: str = '') -> bool:
        """
        Mark the flag as resolved.

        Returns False without touching the row when it is already resolved.
        """
        if self.resolved:
            return False
        self.resolved = True
        self.resolved_by = user
        self.resolved_at = timezone.now()
        self.resolved_notes = notes or ''
        self.save(update_fields=['resolved', 'resolved_by', 'resolved_at', 'resolved_notes'])
        return True


# =============================================================================
# Generated Dashboard Content
# =============================================================================

class DashboardContent(models.Model):
    """
    AI-generated content awaiting review or shown to members.

    Lifecycle is the (approved, active) pair:
    draft (False, False) -> approved-inactive (True, False) -> active (True, True).
    At most one row per content type is active.
    """
    TYPE_FULL_DASHBOARD = 'full_dashboard'
    TYPE_DISCUSSION_PROMPT = 'discussion_prompt'
    TYPE_HERO_MESSAGE = 'hero_message'
    TYPE_COHORT_ACTIVITY = 'cohort_activity'
    TYPE_PRACTICE_ACTIONS = 'practice_actions'
    TYPE_HEALTH_REPORT = 'health_report'

    CONTENT_TYPE_CHOICES = [
        (TYPE_FULL_DASHBOARD, 'Full Dashboard'),
        (TYPE_DISCUSSION_PROMPT, 'Discussion Prompt'),
        (TYPE_HERO_MESSAGE, 'Hero Message'),
        (TYPE_COHORT_ACTIVITY, 'Cohort Activity'),
        (TYPE_PRACTICE_ACTIONS, 'Practice Actions'),
        (TYPE_HEALTH_REPORT, 'Health Report'),
    ]

    content_type = models.CharField(
        max_length=30,
        choices=CONTENT_TYPE_CHOICES,
        db_index=True
    )
    content = models.JSONField(help_text='The generated payload shown to members')
    generation_context = models.JSONField(
        default=dict,
        blank=True,
        help_text='Inputs used for generation (themes, counts, trigger)'
    )

    approved = models.BooleanField(default=False)
    active = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_dashboard_content'
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    generated_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-generated_at']
        verbose_name = 'Dashboard Content'
        verbose_name_plural = 'Dashboard Content'
        indexes = [
            models.Index(fields=['content_type', 'approved', 'active'], name='content_type_state_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['content_type'],
                condition=Q(active=True),
                name='one_active_dashboard_content_per_type'
            ),
        ]

    def __str__(self):
        return f"{self.get_content_type_display()} - {self.generated_at.strftime('%Y-%m-%d %H:%M')}"

    @property
    def state(self) -> str:
        """Lifecycle state name."""
        if self.active:
            return 'active'
        if self.approved:
            return 'approved'
        return 'draft'

    @classmethod
    def get_active(cls, content_type: str = TYPE_FULL_DASHBOARD):
        """The currently active row of a type, or None."""
        return cls.objects.filter(
            content_type=content_type,
            approved=True,
            active=True
        ).first()

    @classmethod
    def get_pending(cls, limit: int = 10):
        """Unapproved drafts, newest first."""
        return cls.objects.filter(approved=False).order_by('-generated_at', '-id')[:limit]
