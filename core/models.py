# core/models.py
from django.db import models
from django.contrib.auth.models import AbstractUser, UserManager
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils.translation import gettext_lazy as _
from django.conf import settings

BLOOD_TYPES = [
    ('A+', 'A+'), ('A-', 'A-'),
    ('B+', 'B+'), ('B-', 'B-'),
    ('AB+', 'AB+'), ('AB-', 'AB-'),
    ('O+', 'O+'), ('O-', 'O-'),
]
BLOOD_TYPE_VALUES = [b[0] for b in BLOOD_TYPES]

ROLE_DONOR = 'donor'
ROLE_PATIENT = 'patient'
ROLE_ADMIN = 'admin'

ROLE_CHOICES = [
    (ROLE_DONOR, 'Donor'),
    (ROLE_PATIENT, 'Patient'),
    (ROLE_ADMIN, 'Admin'),
]

URGENCY_LOW = 'low'
URGENCY_MEDIUM = 'medium'
URGENCY_HIGH = 'high'
URGENCY_CRITICAL = 'critical'

URGENCY_CHOICES = [
    (URGENCY_LOW, 'Low'),
    (URGENCY_MEDIUM, 'Medium'),
    (URGENCY_HIGH, 'High'),
    (URGENCY_CRITICAL, 'Critical'),
]

REQUEST_PENDING = 'pending'
REQUEST_APPROVED = 'approved'
REQUEST_REJECTED = 'rejected'
REQUEST_CANCELLED = 'cancelled'

REQUEST_STATUS = [
    (REQUEST_PENDING, 'Pending'),
    (REQUEST_APPROVED, 'Approved'),
    (REQUEST_REJECTED, 'Rejected'),
    (REQUEST_CANCELLED, 'Cancelled'),
]

DONATION_SCHEDULED = 'scheduled'
DONATION_COMPLETED = 'completed'
DONATION_CANCELLED = 'cancelled'

DONATION_STATUS = [
    (DONATION_SCHEDULED, 'Scheduled'),
    (DONATION_COMPLETED, 'Completed'),
    (DONATION_CANCELLED, 'Cancelled'),
]


class AccountManager(UserManager):

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault('role', ROLE_ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class Account(AbstractUser):
    """
    A person using the system. One model for all three roles; what an account
    may do is decided by its role tag through core.permissions, not by subclassing.
    `last_donation` is only written when one of the donor's donations is completed.
    """
    email = models.EmailField(_('email address'), unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_DONOR)
    phone = models.CharField(max_length=20, blank=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPES, blank=True)
    date_of_birth = models.DateField(blank=True, null=True)
    address = models.TextField(blank=True)
    last_donation = models.DateTimeField(blank=True, null=True)

    objects = AccountManager()

    def __str__(self):
        return self.username

    @property
    def is_donor(self):
        return self.role == ROLE_DONOR

    @property
    def is_patient(self):
        return self.role == ROLE_PATIENT

    @property
    def is_admin_role(self):
        return self.role == ROLE_ADMIN


class BloodRequest(models.Model):
    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='blood_requests')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPES)
    units = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default=URGENCY_MEDIUM)
    reason = models.TextField()
    hospital_name = models.CharField(max_length=200)
    hospital_address = models.CharField(max_length=255)
    hospital_contact = models.CharField(max_length=50)
    required_by = models.DateTimeField()
    status = models.CharField(max_length=20, choices=REQUEST_STATUS, default=REQUEST_PENDING)
    admin_notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_requests'
    )
    interested_donors = models.ManyToManyField(
        settings.AUTH_USER_MODEL, through='DonorInterest', related_name='interested_requests', blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.requester.username} needs {self.units} units ({self.blood_type}) - {self.status}"

    @property
    def is_pending(self):
        return self.status == REQUEST_PENDING

    def interested_donor_ids(self):
        return list(self.interests.values_list('donor_id', flat=True))


class DonorInterest(models.Model):
    """Join row keeping `interested_donors` ordered (by created_at) and free of duplicates."""
    blood_request = models.ForeignKey(BloodRequest, on_delete=models.CASCADE, related_name='interests')
    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='interests')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('blood_request', 'donor')
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.donor.username} -> request {self.blood_request_id}"


class Donation(models.Model):
    """
    A scheduled or completed blood draw. blood_type is copied from the donor when
    the donation is scheduled and is never re-derived afterwards.
    """
    donor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='donations')
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPES)
    units = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(2)])
    donation_date = models.DateTimeField()
    center_name = models.CharField(max_length=200)
    center_address = models.CharField(max_length=255)
    center_contact = models.CharField(max_length=50)
    status = models.CharField(max_length=20, choices=DONATION_STATUS, default=DONATION_SCHEDULED)
    notes = models.TextField(blank=True)

    # health check snapshot, filled in when the donation is completed
    hemoglobin = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    blood_pressure = models.CharField(max_length=20, blank=True)
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    weight = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)

    is_eligible = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.donor.username} gives {self.units} units on {self.donation_date.date()} - {self.status}"

    @property
    def is_scheduled(self):
        return self.status == DONATION_SCHEDULED
