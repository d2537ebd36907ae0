"""
Management command to set a user's program role.

Usage:
    python manage.py set_role <username_or_email> admin
    python manage.py set_role --list
"""
from django.core.management.base import BaseCommand, CommandError
from accounts.models import User


class Command(BaseCommand):
    help = 'Set the program role of a user (participant, facilitator, admin, super_admin)'

    def add_arguments(self, parser):
        parser.add_argument(
            'identifier',
            nargs='?',
            type=str,
            help='Username or email of the user'
        )
        parser.add_argument(
            'role',
            nargs='?',
            choices=[value for value, _ in User.ROLE_CHOICES],
            help='Role to assign'
        )
        parser.add_argument(
            '--list',
            action='store_true',
            help='List all current program admins'
        )

    def handle(self, *args, **options):
        if options['list']:
            admins = User.objects.filter(role__in=User.ADMIN_ROLES).order_by('username')
            if admins.exists():
                self.stdout.write(self.style.SUCCESS('\nCurrent program admins:'))
                for admin in admins:
                    self.stdout.write(
                        f"  - {admin.username} ({admin.email}) - {admin.get_role_display()}, "
                        f"{'Active' if admin.is_active else 'Inactive'}"
                    )
            else:
                self.stdout.write(self.style.WARNING('No program admins found.'))
            return

        identifier = options['identifier']
        role = options['role']
        if not identifier or not role:
            raise CommandError(
                'Please provide a username or email and a role:\n'
                '  python manage.py set_role <username_or_email> <role>\n'
                '\nOr use --list to see current program admins'
            )

        try:
            user = User.objects.get(username=identifier)
        except User.DoesNotExist:
            try:
                user = User.objects.get(email=identifier)
            except User.DoesNotExist:
                raise CommandError(f'User not found with username or email: {identifier}')

        if user.role == role:
            self.stdout.write(self.style.WARNING(f'{user.username} already has role {role}.'))
            return

        previous = user.role
        user.role = role
        user.save(update_fields=['role'])
        self.stdout.write(
            self.style.SUCCESS(f'{user.username}: {previous} -> {role}')
        )
