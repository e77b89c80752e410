from datetime import timedelta
from itertools import count

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT

_seq = count(1)


@pytest.fixture
def make_account(db):
    def _make(role=ROLE_DONOR, blood_type='A+', **extra):
        n = next(_seq)
        extra.setdefault('username', f'{role}{n}')
        extra.setdefault('email', f'{role}{n}@example.com')
        extra.setdefault('first_name', f'First{n}')
        extra.setdefault('last_name', f'Last{n}')
        return get_user_model().objects.create_user(
            password='secret123', role=role, blood_type=blood_type, **extra
        )
    return _make


@pytest.fixture
def donor(make_account):
    return make_account(ROLE_DONOR, 'O-')


@pytest.fixture
def other_donor(make_account):
    return make_account(ROLE_DONOR, 'A+')


@pytest.fixture
def patient(make_account):
    return make_account(ROLE_PATIENT, 'B+')


@pytest.fixture
def admin(make_account):
    return make_account(ROLE_ADMIN, 'O+')


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def request_details(now):
    return {
        'blood_type': 'B+',
        'units': 2,
        'urgency': 'high',
        'reason': 'Scheduled surgery',
        'hospital_name': 'City Hospital',
        'hospital_address': '1 Main St',
        'hospital_contact': '+15550100',
        'required_by': now + timedelta(days=5),
    }


@pytest.fixture
def center():
    return {'name': 'Central Blood Bank', 'address': '2 Side St', 'contact': '+15550111'}


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(account):
        client = APIClient()
        client.force_authenticate(user=account)
        return client
    return _client
