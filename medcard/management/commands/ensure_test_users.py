# medcard/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from medcard.models import User

TEST_PASSWORD = "Test1234!"

TEST_SET = [
    ("admin1@example.com", "Admin One", "admin"),
    ("provider1@example.com", "Provider One", "provider"),
    ("caregiver1@example.com", "Caregiver One", "caregiver"),
    ("patient1@example.com", "Patient One", "patient"),
]


class Command(BaseCommand):
    help = f"Ensure one test user per role exists with password={TEST_PASSWORD} (idempotent)."

    def handle(self, *args, **opts):
        for email, name, role in TEST_SET:
            u, created = User.objects.get_or_create(
                email=email,
                defaults={
                    "username": email,
                    "full_name": name,
                    "role": role,
                    "password": make_password(TEST_PASSWORD),
                    "is_active": True,
                    "is_staff": role == "admin",
                },
            )
            if not created:
                # reset password, role and active flag
                u.password = make_password(TEST_PASSWORD)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
