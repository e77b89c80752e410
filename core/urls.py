# core/urls.py
from django.urls import path, include
from rest_framework import routers
from . import views

# DRF Router for API
router = routers.DefaultRouter()
router.register(r'api/auth', views.AuthViewSet, basename='api-auth')
router.register(r'api/requests', views.BloodRequestViewSet, basename='api-requests')
router.register(r'api/donations', views.DonationViewSet, basename='api-donations')
router.register(r'api/users', views.AccountViewSet, basename='api-users')

urlpatterns = [
    path('api/inventory/', views.InventoryView.as_view(), name='api-inventory'),
    path('api/dashboard/', views.DashboardView.as_view(), name='api-dashboard'),

    # DRF API endpoints
    path('', include(router.urls)),
]
