import logging
from datetime import date

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from core.models import ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT

logger = logging.getLogger(__name__)

SAMPLE_ACCOUNTS = [
    {
        'username': 'admin', 'email': 'admin@blooddonation.com', 'password': 'admin123',
        'first_name': 'System', 'last_name': 'Administrator', 'phone': '+1234567890',
        'blood_type': 'O+', 'date_of_birth': date(1990, 1, 1), 'role': ROLE_ADMIN,
        'address': '123 Admin Street, Admin City, AS 12345',
    },
    {
        'username': 'donor1', 'email': 'donor1@example.com', 'password': 'donor123',
        'first_name': 'John', 'last_name': 'Donor', 'phone': '+1234567891',
        'blood_type': 'A+', 'date_of_birth': date(1985, 5, 15), 'role': ROLE_DONOR,
        'address': '456 Donor Avenue, Donor City, DC 54321',
    },
    {
        'username': 'patient1', 'email': 'patient1@example.com', 'password': 'patient123',
        'first_name': 'Jane', 'last_name': 'Patient', 'phone': '+1234567892',
        'blood_type': 'B+', 'date_of_birth': date(1992, 8, 20), 'role': ROLE_PATIENT,
        'address': '789 Patient Road, Patient City, PC 67890',
    },
]


class Command(BaseCommand):
    help = "Create the sample admin, donor and patient accounts (existing usernames are left alone)."

    def handle(self, *args, **options):
        Account = get_user_model()
        for sample in SAMPLE_ACCOUNTS:
            fields = dict(sample)
            password = fields.pop('password')
            if Account.objects.filter(username=fields['username']).exists():
                self.stdout.write(f"{fields['username']} already exists, skipped")
                continue
            account = Account(**fields)
            account.set_password(password)
            account.save()
            logger.info("Seeded %s account %s", account.role, account.username)
            self.stdout.write(self.style.SUCCESS(f"Created {account.role} {account.username}"))
