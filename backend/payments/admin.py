from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("provider", "provider_transaction_id", "booking", "amount", "status", "created_at")
    list_filter = ("provider", "status")
    search_fields = ("provider_transaction_id", "booking__unique_request_id")
    readonly_fields = (
        "booking",
        "provider",
        "provider_transaction_id",
        "amount",
        "status",
        "provider_created_at",
        "performed_at",
        "cancelled_at",
        "cancel_reason",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
