from django.contrib import admin
from .models import Account, BloodRequest, DonorInterest, Donation
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin


@admin.register(Account)
class AccountAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'first_name', 'last_name', 'role', 'blood_type', 'is_active')
    list_filter = ('role', 'blood_type', 'is_active')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Blood donation', {'fields': ('role', 'phone', 'blood_type', 'date_of_birth', 'address', 'last_donation')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Blood donation', {'fields': ('email', 'role', 'blood_type')}),
    )

    def get_readonly_fields(self, request, obj=None):
        # role is fixed once the account exists
        if obj is not None:
            return ('role', 'last_donation')
        return ()


class DonorInterestInline(admin.TabularInline):
    model = DonorInterest
    extra = 0
    readonly_fields = ('donor', 'created_at')


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'requester', 'blood_type', 'units', 'urgency', 'status', 'required_by')
    list_filter = ('status', 'urgency', 'blood_type')
    search_fields = ('requester__username', 'requester__email', 'reason')
    inlines = [DonorInterestInline]


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ('id', 'donor', 'blood_type', 'units', 'donation_date', 'status')
    list_filter = ('status', 'blood_type')
    search_fields = ('donor__username', 'donor__email')
