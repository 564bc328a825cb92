from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction

from approvals.models import UserRole
from approvals.roles import Role

# One holder per role, the demo institution
DIRECTORY = [
    ('adviser', 'adviser@university.edu', 'Sarah', 'Johnson', Role.COURSE_ADVISER, 'Computer Science'),
    ('hod', 'hod@university.edu', 'Michael', 'Chen', Role.HOD, 'Computer Science'),
    ('dean', 'dean@university.edu', 'Elizabeth', 'Thompson', Role.DEAN, 'Faculty of Engineering'),
    ('dvc', 'dvc@university.edu', 'Robert', 'Williams', Role.DVC_ACADEMIC, 'Academic Affairs'),
    ('vc', 'vc@university.edu', 'Amanda', 'Davis', Role.VICE_CHANCELLOR, 'Executive Office'),
    ('admin', 'admin@university.edu', 'System', 'Administrator', Role.ADMIN, 'ICT'),
]


class Command(BaseCommand):
    help = 'Create one user per workflow role so results can travel the whole approval chain'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default=None,
            help='Password for the created users (unusable password if omitted)',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options['password']
        created_count = 0

        for username, email, first_name, last_name, role, department in DIRECTORY:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={'email': email, 'first_name': first_name, 'last_name': last_name},
            )
            if created:
                if password:
                    user.set_password(password)
                else:
                    user.set_unusable_password()
                user.save()
                created_count += 1

            UserRole.objects.update_or_create(
                user=user,
                role=role,
                defaults={'department': department, 'is_primary': True, 'is_active': True},
            )
            self.stdout.write(f'  - {user.username}: {role.label} ({department})')

        self.stdout.write(
            self.style.SUCCESS(f'Directory ready: {created_count} new users, {len(DIRECTORY)} roles assigned')
        )
