from datetime import timedelta

import pytest
from django.core.management import call_command
from django.contrib.auth import get_user_model

from core.models import BloodRequest, Donation
from core.services import blood_requests, donations

pytestmark = pytest.mark.django_db


def _request_payload(now, **overrides):
    payload = {
        'blood_type': 'A-',
        'units': 3,
        'urgency': 'critical',
        'reason': 'Internal bleeding after surgery',
        'hospital': {'name': 'General Hospital', 'address': '9 Hill Rd', 'contact': '+15550199'},
        'required_by': (now + timedelta(days=2)).isoformat(),
    }
    payload.update(overrides)
    return payload


def test_register_then_login_with_bearer_token(api_client):
    response = api_client.post('/api/auth/register/', {
        'username': 'newdonor', 'email': 'new@example.com', 'password': 'pass1234',
        'first_name': 'New', 'last_name': 'Donor', 'blood_type': 'AB-', 'role': 'donor',
    }, format='json')
    assert response.status_code == 201
    assert response.data['user']['role'] == 'donor'
    assert 'password' not in response.data['user']

    response = api_client.post('/api/auth/login/', {'username': 'new@example.com', 'password': 'pass1234'}, format='json')
    assert response.status_code == 200
    token = response.data['token']

    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    response = api_client.get('/api/auth/me/')
    assert response.status_code == 200
    assert response.data['username'] == 'newdonor'


def test_register_cannot_pick_admin_role(api_client):
    response = api_client.post('/api/auth/register/', {
        'username': 'sneaky', 'email': 'sneaky@example.com', 'password': 'pass1234',
        'blood_type': 'O+', 'role': 'admin',
    }, format='json')
    assert response.status_code == 400
    assert 'role' in response.data


def test_login_failures(api_client, donor):
    response = api_client.post('/api/auth/login/', {'username': donor.username, 'password': 'wrong'}, format='json')
    assert response.status_code == 400

    donor.is_active = False
    donor.save()
    response = api_client.post('/api/auth/login/', {'username': donor.username, 'password': 'secret123'}, format='json')
    assert response.status_code == 403
    assert response.data['detail'] == 'Account is deactivated.'


def test_anonymous_is_refused(api_client):
    assert api_client.get('/api/requests/').status_code == 401
    assert api_client.get('/api/inventory/').status_code == 401


def test_profile_update_leaves_role_alone(client_for, donor):
    response = client_for(donor).patch('/api/auth/me/', {'phone': '+15550123', 'role': 'admin'}, format='json')
    assert response.status_code == 200
    assert response.data['phone'] == '+15550123'
    assert response.data['role'] == 'donor'


def test_patient_creates_request_and_admin_approves(client_for, patient, admin, donor, now):
    response = client_for(patient).post('/api/requests/', _request_payload(now), format='json')
    assert response.status_code == 201
    assert response.data['status'] == 'pending'
    assert response.data['urgency'] == 'critical'
    assert response.data['hospital']['name'] == 'General Hospital'
    request_id = response.data['id']

    response = client_for(donor).post(f'/api/requests/{request_id}/interest/', {'is_interested': True}, format='json')
    assert response.status_code == 200
    assert response.data['interested_donors'] == [donor.pk]
    assert response.data['is_interested'] is True

    response = client_for(admin).put(
        f'/api/requests/{request_id}/status/', {'status': 'approved', 'admin_notes': 'ok'}, format='json'
    )
    assert response.status_code == 200
    assert response.data['status'] == 'approved'
    assert response.data['reviewed_by'] == admin.pk

    response = client_for(donor).post(f'/api/requests/{request_id}/interest/', {'is_interested': False}, format='json')
    assert response.status_code == 400
    assert response.data['detail'].code == 'invalid_state'


def test_donor_request_ignores_urgency(client_for, donor, now):
    response = client_for(donor).post('/api/requests/', _request_payload(now), format='json')
    assert response.status_code == 201
    assert response.data['urgency'] == 'medium'


def test_request_validation_errors_are_field_keyed(client_for, patient, now):
    payload = _request_payload(now, required_by=(now - timedelta(days=1)).isoformat())
    response = client_for(patient).post('/api/requests/', payload, format='json')
    assert response.status_code == 400
    assert 'required_by' in response.data
    assert not BloodRequest.objects.exists()


def test_role_gates(client_for, patient, donor, admin, now):
    pending = blood_requests.create_request(patient, {
        'blood_type': 'B+', 'units': 1, 'urgency': 'low', 'reason': 'Anemia',
        'hospital_name': 'H', 'hospital_address': 'A', 'hospital_contact': 'C',
        'required_by': now + timedelta(days=9),
    })
    assert client_for(admin).post('/api/requests/', _request_payload(now), format='json').status_code == 403
    assert client_for(patient).post(
        f'/api/requests/{pending.pk}/interest/', {'is_interested': True}, format='json'
    ).status_code == 403
    assert client_for(donor).put(
        f'/api/requests/{pending.pk}/status/', {'status': 'approved'}, format='json'
    ).status_code == 403
    assert client_for(patient).get('/api/users/').status_code == 403


def test_other_patient_cannot_see_or_cancel(client_for, patient, make_account, now):
    pending = blood_requests.create_request(patient, {
        'blood_type': 'B+', 'units': 1, 'urgency': 'low', 'reason': 'Anemia',
        'hospital_name': 'H', 'hospital_address': 'A', 'hospital_contact': 'C',
        'required_by': now + timedelta(days=9),
    })
    stranger = client_for(make_account('patient', 'O+'))
    assert stranger.get(f'/api/requests/{pending.pk}/').status_code == 404
    assert stranger.post(f'/api/requests/{pending.pk}/cancel/').status_code == 404

    response = client_for(patient).post(f'/api/requests/{pending.pk}/cancel/')
    assert response.status_code == 200
    assert response.data['status'] == 'cancelled'


def test_list_is_paginated(client_for, patient, admin, request_details, now):
    for _ in range(3):
        blood_requests.create_request(patient, request_details, now)
    response = client_for(admin).get('/api/requests/?limit=2&page=2')
    assert response.status_code == 200
    assert response.data['total'] == 3
    assert response.data['total_pages'] == 2
    assert response.data['current_page'] == 2
    assert len(response.data['results']) == 1


def test_public_endpoints_need_no_login(api_client, patient, admin, request_details, now):
    approved = blood_requests.create_request(patient, request_details, now)
    blood_requests.update_request_status(approved.pk, admin, 'approved')
    blood_requests.create_request(patient, request_details, now)

    response = api_client.get('/api/requests/public/')
    assert response.status_code == 200
    assert [r['id'] for r in response.data] == [approved.pk]
    assert 'email' not in response.data[0]['requester']

    response = api_client.get('/api/requests/stats/')
    assert response.status_code == 200
    assert response.data['total_requests'] == 2

    assert api_client.get('/api/donations/stats/').status_code == 200
    assert api_client.get('/api/donations/recent/').status_code == 200


def test_suggest_urgency(client_for, patient, now):
    response = client_for(patient).post('/api/requests/suggest-urgency/', {
        'reason': 'car accident', 'required_by': (now + timedelta(days=10)).isoformat(),
    }, format='json')
    assert response.status_code == 200
    assert response.data['urgency'] == 'critical'
    assert response.data['explanation']


def test_donation_flow(client_for, donor, admin, now):
    payload = {
        'donation_date': (now + timedelta(days=3)).isoformat(),
        'units': 1,
        'donation_center': {'name': 'Red Cross', 'address': '4 Elm St', 'contact': '+15550155'},
    }
    response = client_for(donor).post('/api/donations/', payload, format='json')
    assert response.status_code == 201
    assert response.data['blood_type'] == 'O-'
    assert response.data['status'] == 'scheduled'
    donation_id = response.data['id']

    response = client_for(admin).put(f'/api/donations/{donation_id}/status/', {
        'status': 'completed', 'health_check': {'hemoglobin': '13.8', 'blood_pressure': '118/76'},
    }, format='json')
    assert response.status_code == 200
    assert response.data['status'] == 'completed'
    assert response.data['health_check']['blood_pressure'] == '118/76'

    donor.refresh_from_db()
    assert donor.last_donation == Donation.objects.get(pk=donation_id).donation_date

    payload['donation_date'] = (now + timedelta(days=10)).isoformat()
    response = client_for(donor).post('/api/donations/', payload, format='json')
    assert response.status_code == 400
    assert 'wait_days_remaining' in response.data


def test_donation_units_limit(client_for, donor, now):
    response = client_for(donor).post('/api/donations/', {
        'donation_date': (now + timedelta(days=3)).isoformat(),
        'units': 3,
        'donation_center': {'name': 'Red Cross', 'address': '4 Elm St', 'contact': '+15550155'},
    }, format='json')
    assert response.status_code == 400
    assert 'units' in response.data


def test_admin_deactivates_account(client_for, admin, donor):
    response = client_for(admin).put(f'/api/users/{donor.pk}/status/', {'is_active': False}, format='json')
    assert response.status_code == 200
    assert response.data['is_active'] is False
    donor.refresh_from_db()
    assert client_for(donor).get('/api/auth/me/').status_code == 403


def test_admin_user_list_carries_stats(client_for, admin, donor):
    response = client_for(admin).get('/api/users/?role=donor')
    assert response.status_code == 200
    assert response.data['total'] == 1
    assert response.data['results'][0]['stats']['total_donations'] == 0


def test_inventory(client_for, patient, donor, other_donor):
    response = client_for(patient).get('/api/inventory/')
    assert response.status_code == 200
    rows = {row['blood_type']: row for row in response.data['inventory']}
    assert len(rows) == 8
    assert rows['O-']['available_units'] == 500
    assert rows['A+']['available_units'] == 500
    assert rows['B-']['available_units'] == 0


def test_dashboard_per_role(client_for, admin, donor, patient):
    data = client_for(admin).get('/api/dashboard/').data
    assert data['total_donors'] == 1
    assert data['total_patients'] == 1

    data = client_for(donor).get('/api/dashboard/').data
    assert data['eligibility']['eligible'] is True
    assert data['latest_donation'] is None

    data = client_for(patient).get('/api/dashboard/').data
    assert data['total_requests'] == 0


def test_seed_accounts_is_idempotent():
    call_command('seed_accounts')
    call_command('seed_accounts')
    Account = get_user_model()
    assert Account.objects.count() == 3
    assert Account.objects.get(username='admin').role == 'admin'
    assert Account.objects.get(username='donor1').check_password('donor123')


def test_recent_donations_hide_donor_contact(api_client, donor, admin, center, now):
    scheduled = donations.schedule_donation(donor, now + timedelta(days=1), 1, center, now=now)
    donations.complete_donation(scheduled.pk, admin)

    response = api_client.get('/api/donations/recent/')
    assert response.status_code == 200
    assert len(response.data) == 1
    assert response.data[0]['donor'] == {
        'first_name': donor.first_name,
        'last_name': donor.last_name,
        'blood_type': 'O-',
    }
    assert 'email' not in response.data[0]['donor']
    assert 'phone' not in response.data[0]['donor']
