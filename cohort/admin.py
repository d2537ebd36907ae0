from django import forms
from django.contrib import admin, messages
from django.utils.html import format_html

from .exceptions import ApprovalConflictError, ContentLockedError, ContentValidationError
from .flags import resolve_flag
from .models import (
    DashboardContent, DiscussionPost, DiscussionThread, EngagementFlag, Event,
    ProgramSetting, UserActivitySnapshot
)
from .review import approve_content, edit_content
from .schemas import validate_content

FLAG_COLORS = {
    EngagementFlag.FLAG_RED: '#ef4444',
    EngagementFlag.FLAG_YELLOW: '#eab308',
    EngagementFlag.FLAG_GREEN: '#22c55e',
}


@admin.register(ProgramSetting)
class ProgramSettingAdmin(admin.ModelAdmin):
    """Admin configuration for ProgramSetting model."""
    list_display = ('setting_key', 'setting_value', 'updated_by', 'updated_at')
    search_fields = ('setting_key',)
    readonly_fields = ('updated_at',)


class DiscussionPostInline(admin.TabularInline):
    model = DiscussionPost
    extra = 0
    readonly_fields = ('created_at',)


@admin.register(DiscussionThread)
class DiscussionThreadAdmin(admin.ModelAdmin):
    """Admin configuration for DiscussionThread model."""
    list_display = ('title', 'created_by', 'views_count', 'created_at')
    list_filter = ('created_at',)
    search_fields = ('title', 'content_html', 'created_by__username')
    ordering = ('-created_at',)
    inlines = [DiscussionPostInline]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'start_time', 'location')
    list_filter = ('start_time',)
    search_fields = ('title', 'location')
    ordering = ('start_time',)


@admin.register(UserActivitySnapshot)
class UserActivitySnapshotAdmin(admin.ModelAdmin):
    """Snapshots are written by activity tracking; shown read-only here."""
    list_display = (
        'user', 'snapshot_date', 'logins_count', 'posts_count',
        'responses_count', 'modules_completed'
    )
    list_filter = ('snapshot_date',)
    search_fields = ('user__username', 'user__display_name')
    ordering = ('-snapshot_date',)
    readonly_fields = (
        'user', 'snapshot_date', 'logins_count', 'posts_count', 'responses_count',
        'modules_completed', 'last_login', 'last_partner_interaction', 'created_at'
    )


@admin.register(EngagementFlag)
class EngagementFlagAdmin(admin.ModelAdmin):
    """Admin configuration for EngagementFlag model with resolution actions."""
    list_display = ('flag_badge', 'user', 'reason', 'resolved', 'resolved_by', 'created_at')
    list_filter = ('flag_type', 'resolved', 'created_at')
    search_fields = ('user__username', 'user__display_name', 'reason')
    ordering = ('-created_at',)
    readonly_fields = (
        'user', 'flag_type', 'reason', 'context', 'recommended_action',
        'resolved', 'resolved_by', 'resolved_at', 'created_at'
    )
    actions = ['mark_resolved']

    def get_readonly_fields(self, request, obj=None):
        # Resolved flags are terminal
        if obj is not None and obj.resolved:
            return self.readonly_fields + ('resolved_notes',)
        return self.readonly_fields

    def save_model(self, request, obj, form, change):
        if change and obj.resolved:
            return
        super().save_model(request, obj, form, change)

    def flag_badge(self, obj):
        """Display flag type with color badge."""
        return format_html(
            '<span style="background-color: {}; color: white; padding: 2px 8px; '
            'border-radius: 4px; font-size: 11px;">{}</span>',
            FLAG_COLORS.get(obj.flag_type, '#888'),
            obj.get_flag_type_display()
        )
    flag_badge.short_description = 'Flag'
    flag_badge.admin_order_field = 'flag_type'

    @admin.action(description='Mark selected flags as resolved')
    def mark_resolved(self, request, queryset):
        updated = 0
        for flag_id in queryset.filter(resolved=False).values_list('id', flat=True):
            _, changed = resolve_flag(flag_id, resolved_by=request.user)
            updated += int(changed)
        self.message_user(request, f'{updated} flag(s) marked as resolved.')


class DashboardContentForm(forms.ModelForm):
    """Checks the body against the schema of its content type."""

    class Meta:
        model = DashboardContent
        fields = '__all__'

    def clean(self):
        cleaned_data = super().clean()
        if 'content' not in self.fields or 'content' not in cleaned_data:
            return cleaned_data

        content_type = cleaned_data.get('content_type') or self.instance.content_type
        try:
            cleaned_data['content'] = validate_content(content_type, cleaned_data['content'])
        except ContentValidationError as e:
            self.add_error('content', str(e))
        return cleaned_data


@admin.register(DashboardContent)
class DashboardContentAdmin(admin.ModelAdmin):
    """
    Admin configuration for DashboardContent model.

    Drafts are edited through the review workflow; approved rows are locked.
    """
    form = DashboardContentForm
    list_display = ('id', 'content_type', 'state_badge', 'approved_by', 'approved_at', 'generated_at')
    list_filter = ('content_type', 'approved', 'active', 'generated_at')
    ordering = ('-generated_at',)
    readonly_fields = (
        'approved', 'active', 'approved_by', 'approved_at', 'generated_at',
        'updated_at', 'generation_context'
    )
    actions = ['approve_selected']

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return self.readonly_fields
        if obj.approved:
            return self.readonly_fields + ('content_type', 'content')
        return self.readonly_fields + ('content_type',)

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return
        if 'content' not in form.changed_data:
            return
        try:
            edit_content(obj.pk, form.cleaned_data['content'], edited_by=request.user)
        except ContentLockedError as e:
            self.message_user(request, str(e), level=messages.ERROR)

    def state_badge(self, obj):
        colors = {'active': '#22c55e', 'approved': '#3b82f6', 'draft': '#888'}
        return format_html('<span style="color: {};">{}</span>', colors[obj.state], obj.state.title())
    state_badge.short_description = 'State'

    @admin.action(description='Approve and activate selected content')
    def approve_selected(self, request, queryset):
        approved = 0
        for content_id in queryset.order_by('generated_at').values_list('id', flat=True):
            try:
                approve_content(content_id, approved_by=request.user)
            except ApprovalConflictError as e:
                self.message_user(request, str(e), level=messages.ERROR)
                continue
            approved += 1
        self.message_user(request, f'{approved} item(s) approved; the newest of each type is now live.')
