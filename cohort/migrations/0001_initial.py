# Generated manually

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProgramSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('setting_key', models.CharField(max_length=100, unique=True)),
                ('setting_value', models.JSONField(blank=True, default=dict)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('updated_by', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='updated_program_settings',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'ordering': ['setting_key'],
            },
        ),
        migrations.CreateModel(
            name='DiscussionThread',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=300)),
                ('content_html', models.TextField(blank=True)),
                ('views_count', models.PositiveIntegerField(default=0)),
                ('last_activity_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('created_by', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='discussion_threads',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='DiscussionPost',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField()),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('author', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='discussion_posts',
                    to=settings.AUTH_USER_MODEL
                )),
                ('thread', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='posts',
                    to='cohort.discussionthread'
                )),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('start_time', models.DateTimeField(db_index=True)),
                ('location', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
            ],
            options={
                'ordering': ['start_time'],
            },
        ),
        migrations.CreateModel(
            name='UserActivitySnapshot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('snapshot_date', models.DateField(db_index=True)),
                ('logins_count', models.PositiveIntegerField(default=0)),
                ('posts_count', models.PositiveIntegerField(default=0)),
                ('responses_count', models.PositiveIntegerField(default=0)),
                ('modules_completed', models.PositiveIntegerField(default=0)),
                ('last_login', models.DateTimeField(blank=True, null=True)),
                ('last_partner_interaction', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='activity_snapshots',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'User Activity Snapshot',
                'verbose_name_plural': 'User Activity Snapshots',
                'ordering': ['-snapshot_date'],
            },
        ),
        migrations.AddConstraint(
            model_name='useractivitysnapshot',
            constraint=models.UniqueConstraint(
                fields=('user', 'snapshot_date'),
                name='unique_snapshot_per_user_per_day'
            ),
        ),
        migrations.CreateModel(
            name='EngagementFlag',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('flag_type', models.CharField(
                    choices=[
                        ('red', 'Red - Needs Attention'),
                        ('yellow', 'Yellow - Monitor'),
                        ('green', 'Green - Celebrate'),
                    ],
                    db_index=True,
                    max_length=10
                )),
                ('reason', models.CharField(help_text='Short justification built from the weekly deltas', max_length=300)),
                ('context', models.JSONField(blank=True, default=dict, help_text='Raw weekly counts that justified the flag')),
                ('recommended_action', models.TextField(blank=True)),
                ('resolved', models.BooleanField(db_index=True, default=False)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('resolved_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('resolved_by', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='resolved_engagement_flags',
                    to=settings.AUTH_USER_MODEL
                )),
                ('user', models.ForeignKey(
                    help_text='The member this flag is about',
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='engagement_flags',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Engagement Flag',
                'verbose_name_plural': 'Engagement Flags',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='engagementflag',
            index=models.Index(fields=['flag_type', 'resolved'], name='flag_type_resolved_idx'),
        ),
        migrations.CreateModel(
            name='DashboardContent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content_type', models.CharField(
                    choices=[
                        ('full_dashboard', 'Full Dashboard'),
                        ('discussion_prompt', 'Discussion Prompt'),
                        ('hero_message', 'Hero Message'),
                        ('cohort_activity', 'Cohort Activity'),
                        ('practice_actions', 'Practice Actions'),
                    ],
                    db_index=True,
                    max_length=30
                )),
                ('content', models.JSONField(help_text='The generated payload shown to members')),
                ('generation_context', models.JSONField(
                    blank=True,
                    default=dict,
                    help_text='Inputs used for generation (themes, counts, trigger)'
                )),
                ('approved', models.BooleanField(default=False)),
                ('active', models.BooleanField(default=False)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('generated_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='approved_dashboard_content',
                    to=settings.AUTH_USER_MODEL
                )),
            ],
            options={
                'verbose_name': 'Dashboard Content',
                'verbose_name_plural': 'Dashboard Content',
                'ordering': ['-generated_at'],
            },
        ),
        migrations.AddIndex(
            model_name='dashboardcontent',
            index=models.Index(fields=['content_type', 'approved', 'active'], name='content_type_state_idx'),
        ),
        migrations.AddConstraint(
            model_name='dashboardcontent',
            constraint=models.UniqueConstraint(
                condition=models.Q(('active', True)),
                fields=('content_type',),
                name='one_active_dashboard_content_per_type'
            ),
        ),
    ]
