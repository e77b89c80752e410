# core/serializers.py
from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import (
    BloodRequest, Donation, BLOOD_TYPE_VALUES,
    REQUEST_STATUS, DONATION_STATUS, ROLE_DONOR, ROLE_PATIENT,
)

Account = get_user_model()


def validate_blood_type_value(value):
    if value not in BLOOD_TYPE_VALUES:
        raise serializers.ValidationError("Invalid blood type.")
    return value


# ---------- Accounts ----------

class AccountSerializer(serializers.ModelSerializer):

    class Meta:
        model = Account
        fields = (
            'id', 'username', 'email', 'first_name', 'last_name', 'phone', 'blood_type',
            'date_of_birth', 'role', 'address', 'is_active', 'last_donation', 'date_joined',
        )
        read_only_fields = fields


class AccountBriefSerializer(serializers.ModelSerializer):

    class Meta:
        model = Account
        fields = ('id', 'first_name', 'last_name', 'email', 'phone', 'blood_type', 'role')
        read_only_fields = fields


class AdminAccountSerializer(AccountSerializer):
    """Account row for the admin lists; carries the per-role counters when the queryset annotates them."""
    STAT_FIELDS = (
        'total_donations', 'completed_donations', 'last_completed_donation',
        'total_requests', 'pending_requests', 'approved_requests', 'last_request_at',
    )
    stats = serializers.SerializerMethodField()

    class Meta(AccountSerializer.Meta):
        fields = AccountSerializer.Meta.fields + ('stats',)
        read_only_fields = fields

    def get_stats(self, obj):
        return {name: getattr(obj, name) for name in self.STAT_FIELDS if hasattr(obj, name)}


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, required=True, min_length=6)
    role = serializers.ChoiceField(choices=[ROLE_DONOR, ROLE_PATIENT])

    class Meta:
        model = Account
        fields = (
            'id', 'username', 'email', 'password', 'first_name', 'last_name',
            'phone', 'blood_type', 'date_of_birth', 'role', 'address',
        )
        extra_kwargs = {
            'blood_type': {'required': True, 'allow_blank': False},
            'email': {'required': True},
        }

    def validate_blood_type(self, value):
        return validate_blood_type_value(value)

    def create(self, validated_data):
        password = validated_data.pop('password')
        account = Account(**validated_data)
        account.set_password(password)
        account.save()
        return account


class ProfileSerializer(serializers.ModelSerializer):
    """Self-service profile edits. Role, blood type and donation history are not editable here."""

    class Meta:
        model = Account
        fields = ('first_name', 'last_name', 'phone', 'address')


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(help_text="Username or email")
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class AccountStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()


# ---------- Blood requests ----------

class HospitalSerializer(serializers.Serializer):
    name = serializers.CharField(source='hospital_name', max_length=200)
    address = serializers.CharField(source='hospital_address', max_length=255)
    contact = serializers.CharField(source='hospital_contact', max_length=50)


class BloodRequestSerializer(serializers.ModelSerializer):
    requester = AccountBriefSerializer(read_only=True)
    hospital = HospitalSerializer(source='*')
    urgency = serializers.ChoiceField(choices=BloodRequest._meta.get_field('urgency').choices, required=False)
    interested_donors = serializers.SerializerMethodField()
    is_interested = serializers.SerializerMethodField()

    class Meta:
        model = BloodRequest
        fields = (
            'id', 'requester', 'blood_type', 'units', 'urgency', 'reason', 'hospital',
            'required_by', 'status', 'admin_notes', 'reviewed_by', 'interested_donors',
            'is_interested', 'created_at', 'updated_at',
        )
        read_only_fields = ('status', 'admin_notes', 'reviewed_by', 'created_at', 'updated_at')

    def validate_blood_type(self, value):
        return validate_blood_type_value(value)

    def validate_units(self, value):
        if value <= 0:
            raise serializers.ValidationError("Units must be greater than zero.")
        return value

    def get_interested_donors(self, obj):
        return [interest.donor_id for interest in obj.interests.all()]

    def get_is_interested(self, obj):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return False
        return request.user.pk in self.get_interested_donors(obj)


class PublicBloodRequestSerializer(serializers.ModelSerializer):
    requester = serializers.SerializerMethodField()

    class Meta:
        model = BloodRequest
        fields = ('id', 'requester', 'blood_type', 'units', 'urgency', 'required_by', 'hospital_name', 'created_at')
        read_only_fields = fields

    def get_requester(self, obj):
        return {
            'first_name': obj.requester.first_name,
            'last_name': obj.requester.last_name,
            'blood_type': obj.requester.blood_type,
        }


class RequestStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s[0] for s in REQUEST_STATUS])
    admin_notes = serializers.CharField(required=False, allow_blank=True)


class InterestSerializer(serializers.Serializer):
    is_interested = serializers.BooleanField()


class UrgencySuggestionSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)
    required_by = serializers.DateTimeField()


# ---------- Donations ----------

class DonationCenterSerializer(serializers.Serializer):
    name = serializers.CharField(source='center_name', max_length=200)
    address = serializers.CharField(source='center_address', max_length=255)
    contact = serializers.CharField(source='center_contact', max_length=50)


class HealthCheckSerializer(serializers.Serializer):
    hemoglobin = serializers.DecimalField(max_digits=4, decimal_places=1, required=False, allow_null=True)
    blood_pressure = serializers.CharField(max_length=20, required=False, allow_blank=True)
    temperature = serializers.DecimalField(max_digits=4, decimal_places=1, required=False, allow_null=True)
    weight = serializers.DecimalField(max_digits=5, decimal_places=1, required=False, allow_null=True)


class DonationSerializer(serializers.ModelSerializer):
    donor = AccountBriefSerializer(read_only=True)
    donation_center = DonationCenterSerializer(source='*')
    health_check = HealthCheckSerializer(source='*', read_only=True)
    units = serializers.IntegerField(min_value=1, max_value=2)

    class Meta:
        model = Donation
        fields = (
            'id', 'donor', 'blood_type', 'units', 'donation_date', 'donation_center',
            'status', 'notes', 'health_check', 'is_eligible', 'created_at',
        )
        read_only_fields = ('blood_type', 'status', 'is_eligible', 'created_at')


class DonationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s[0] for s in DONATION_STATUS])
    notes = serializers.CharField(required=False, allow_blank=True)
    health_check = HealthCheckSerializer(required=False)


class PublicDonationSerializer(serializers.ModelSerializer):
    """Completed donations for the anonymous feed: no donor contact details."""
    donor = serializers.SerializerMethodField()

    class Meta:
        model = Donation
        fields = ('id', 'donor', 'blood_type', 'units', 'donation_date', 'center_name')
        read_only_fields = fields

    def get_donor(self, obj):
        return {
            'first_name': obj.donor.first_name,
            'last_name': obj.donor.last_name,
            'blood_type': obj.donor.blood_type,
        }
