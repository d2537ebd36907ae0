# Generated manually

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('cohort', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='dashboardcontent',
            name='content_type',
            field=models.CharField(
                choices=[
                    ('full_dashboard', 'Full Dashboard'),
                    ('discussion_prompt', 'Discussion Prompt'),
                    ('hero_message', 'Hero Message'),
                    ('cohort_activity', 'Cohort Activity'),
                    ('practice_actions', 'Practice Actions'),
                    ('health_report', 'Health Report'),
                ],
                db_index=True,
                max_length=30
            ),
        ),
    ]
