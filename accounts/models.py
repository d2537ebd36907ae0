from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model for cohort members and program staff."""
    ROLE_PARTICIPANT = 'participant'
    ROLE_FACILITATOR = 'facilitator'
    ROLE_ADMIN = 'admin'
    ROLE_SUPER_ADMIN = 'super_admin'

    ROLE_CHOICES = [
        (ROLE_PARTICIPANT, 'Participant'),
        (ROLE_FACILITATOR, 'Facilitator'),
        (ROLE_ADMIN, 'Admin'),
        (ROLE_SUPER_ADMIN, 'Super Admin'),
    ]

    # Roles allowed to review content and resolve engagement flags
    ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)

    display_name = models.CharField(max_length=100, blank=True)
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_PARTICIPANT,
        db_index=True,
        help_text="Program role; participants are the tracked cohort members"
    )

    def __str__(self):
        return self.display_name or self.username

    @property
    def is_program_admin(self) -> bool:
        """Check if this user may review content and resolve flags."""
        return self.is_active and self.role in self.ADMIN_ROLES

    @property
    def full_name(self) -> str:
        """Best available human name for prompts and feeds."""
        name = self.get_full_name().strip()
        return name or self.display_name or self.email or self.username

    @property
    def first_name_or_display(self) -> str:
        """First name used to personalize the hero message."""
        if self.first_name:
            return self.first_name
        return self.full_name.split(' ')[0]

    @classmethod
    def active_members(cls):
        """All active cohort participants, ordered for stable processing."""
        return cls.objects.filter(
            role=cls.ROLE_PARTICIPANT,
            is_active=True
        ).order_by('id')
