# core/views.py
import logging

from rest_framework import viewsets, mixins, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.authtoken.models import Token

from django.contrib.auth import authenticate, get_user_model

from .exceptions import AuthorizationError, ValidationError
from .models import ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT
from .permissions import IsActiveAccount, IsAdminRole, IsDonor, IsRequester
from .serializers import (
    AccountSerializer, AdminAccountSerializer, RegisterSerializer, ProfileSerializer,
    LoginSerializer, AccountStatusSerializer,
    BloodRequestSerializer, PublicBloodRequestSerializer, RequestStatusSerializer,
    InterestSerializer, UrgencySuggestionSerializer,
    DonationSerializer, DonationStatusSerializer, PublicDonationSerializer,
)
from .services import accounts, blood_requests, dashboard, donations, inventory
from .urgency import classify

logger = logging.getLogger(__name__)

Account = get_user_model()


def _flag(value):
    return str(value).lower() in ('1', 'true', 'yes')


def _limit(request, default):
    try:
        return max(1, min(int(request.query_params.get('limit', default)), 100))
    except (TypeError, ValueError):
        raise ValidationError({'limit': ['A valid integer is required.']})


# ---------- Authentication ----------

class AuthViewSet(viewsets.ViewSet):

    def get_permissions(self):
        if self.action in ('register', 'login'):
            return [permissions.AllowAny()]
        return [IsActiveAccount()]

    def _token_response(self, account, http_status=status.HTTP_200_OK):
        token, _ = Token.objects.get_or_create(user=account)
        return Response({'token': token.key, 'user': AccountSerializer(account).data}, status=http_status)

    @action(detail=False, methods=['post'])
    def register(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = serializer.save()
        return self._token_response(account, status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def login(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        identifier = serializer.validated_data['username'].strip()
        password = serializer.validated_data['password']

        account_obj = Account.objects.filter(email__iexact=identifier).first() if '@' in identifier else None
        username = account_obj.username if account_obj else identifier
        account = authenticate(request, username=username, password=password)

        if account is None:
            candidate = account_obj or Account.objects.filter(username=username).first()
            if candidate is not None and not candidate.is_active and candidate.check_password(password):
                raise AuthorizationError('Account is deactivated.')
            raise ValidationError({'detail': ['Invalid credentials.']})

        logger.info("Account %s logged in", account.pk)
        return self._token_response(account)

    @action(detail=False, methods=['get', 'put', 'patch'])
    def me(self, request):
        if request.method == 'GET':
            return Response(AccountSerializer(request.user).data)
        serializer = ProfileSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(AccountSerializer(request.user).data)


# ---------- Blood requests ----------

class BloodRequestViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = BloodRequestSerializer

    def get_permissions(self):
        if self.action in ('create', 'update', 'partial_update', 'cancel'):
            return [IsRequester()]
        if self.action in ('interest', 'interested'):
            return [IsDonor()]
        if self.action == 'set_status':
            return [IsAdminRole()]
        if self.action in ('public', 'stats'):
            return [permissions.AllowAny()]
        return [IsActiveAccount()]

    def get_queryset(self):
        params = self.request.query_params
        if self.action != 'list':
            return blood_requests.requests_visible_to(self.request.user)
        return blood_requests.requests_visible_to(
            self.request.user,
            status=params.get('status'),
            urgency=params.get('urgency'),
            blood_type=params.get('blood_type'),
            search=params.get('search', '').strip() or None,
            mine=_flag(params.get('mine')),
        )

    def _respond(self, blood_request, http_status=status.HTTP_200_OK):
        return Response(self.get_serializer(blood_request).data, status=http_status)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blood_request = blood_requests.create_request(request.user, serializer.validated_data)
        return self._respond(blood_request, status.HTTP_201_CREATED)

    def update(self, request, pk=None, partial=True):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        blood_request = blood_requests.update_request(pk, request.user, dict(serializer.validated_data))
        return self._respond(blood_request)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk, partial=True)

    @action(detail=True, methods=['post', 'put'])
    def cancel(self, request, pk=None):
        return self._respond(blood_requests.cancel_request(pk, request.user))

    @action(detail=True, methods=['post', 'put'])
    def interest(self, request, pk=None):
        serializer = InterestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blood_request = blood_requests.express_interest(pk, request.user, serializer.validated_data['is_interested'])
        return self._respond(blood_request)

    @action(detail=True, methods=['post', 'put'], url_path='status')
    def set_status(self, request, pk=None):
        serializer = RequestStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        blood_request = blood_requests.update_request_status(
            pk, request.user,
            serializer.validated_data['status'],
            serializer.validated_data.get('admin_notes'),
        )
        return self._respond(blood_request)

    @action(detail=False, methods=['get'])
    def interested(self, request):
        qs = blood_requests.interested_requests(request.user)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=False, methods=['get'])
    def public(self, request):
        qs = blood_requests.public_requests(
            blood_type=request.query_params.get('blood_type'),
            urgency=request.query_params.get('urgency'),
            limit=_limit(request, 10),
        )
        return Response(PublicBloodRequestSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(blood_requests.request_stats())

    @action(detail=False, methods=['post'], url_path='suggest-urgency')
    def suggest_urgency(self, request):
        serializer = UrgencySuggestionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assessment = classify(serializer.validated_data['reason'], serializer.validated_data['required_by'])
        return Response({'urgency': assessment.tier, 'explanation': assessment.explanation})


# ---------- Donations ----------

class DonationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = DonationSerializer

    def get_permissions(self):
        if self.action in ('create', 'cancel'):
            return [IsDonor()]
        if self.action == 'set_status':
            return [IsAdminRole()]
        if self.action in ('stats', 'recent'):
            return [permissions.AllowAny()]
        return [IsActiveAccount()]

    def get_queryset(self):
        status_filter = self.request.query_params.get('status') if self.action == 'list' else None
        return donations.donations_visible_to(self.request.user, status=status_filter)

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        donation = donations.schedule_donation(
            request.user,
            data['donation_date'],
            data['units'],
            {'name': data['center_name'], 'address': data['center_address'], 'contact': data['center_contact']},
            notes=data.get('notes', ''),
        )
        return Response(self.get_serializer(donation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post', 'put'])
    def cancel(self, request, pk=None):
        donation = donations.cancel_donation(pk, request.user)
        return Response(self.get_serializer(donation).data)

    @action(detail=True, methods=['post', 'put'], url_path='status')
    def set_status(self, request, pk=None):
        serializer = DonationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        donation = donations.update_donation_status(
            pk, request.user, data['status'],
            notes=data.get('notes'),
            health_check=data.get('health_check'),
        )
        return Response(self.get_serializer(donation).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(donations.donation_stats())

    @action(detail=False, methods=['get'])
    def recent(self, request):
        qs = donations.recent_donations(limit=_limit(request, 5))
        return Response(PublicDonationSerializer(qs, many=True).data)


# ---------- Accounts (admin) ----------

class AccountViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = AdminAccountSerializer
    permission_classes = [IsAdminRole]

    def get_queryset(self):
        params = self.request.query_params
        if self.action != 'list':
            return Account.objects.all()
        return accounts.accounts_for_admin(
            role=params.get('role'),
            search=params.get('search', '').strip() or None,
            blood_type=params.get('blood_type'),
        )

    @action(detail=True, methods=['post', 'put'], url_path='status')
    def set_status(self, request, pk=None):
        serializer = AccountStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = accounts.set_account_active(pk, request.user, serializer.validated_data['is_active'])
        return Response(AdminAccountSerializer(account).data)


# ---------- Inventory & dashboards ----------

class InventoryView(APIView):

    def get(self, request):
        return Response({'inventory': inventory.inventory_snapshot()})


class DashboardView(APIView):

    def get(self, request):
        user = request.user
        if user.role == ROLE_ADMIN:
            return Response(dashboard.admin_summary())

        if user.role == ROLE_DONOR:
            summary = dashboard.donor_summary(user)
            latest = summary['latest_donation']
            return Response({
                'recent_donations': DonationSerializer(summary['recent_donations'], many=True).data,
                'total_donations': summary['total_donations'],
                'latest_donation': DonationSerializer(latest).data if latest else None,
                'eligibility': summary['eligibility'],
                'user': AccountSerializer(user).data,
            })

        if user.role == ROLE_PATIENT:
            summary = dashboard.patient_summary(user)
            return Response({
                'recent_requests': BloodRequestSerializer(
                    summary['recent_requests'], many=True, context={'request': request}
                ).data,
                'total_requests': summary['total_requests'],
                'pending_requests': summary['pending_requests'],
                'user': AccountSerializer(user).data,
            })

        raise AuthorizationError()
