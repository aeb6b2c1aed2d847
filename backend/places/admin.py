from django.contrib import admin

from .models import Perk, Place, RefundTerm


class RefundTermInline(admin.TabularInline):
    model = RefundTerm
    extra = 0


class PerkInline(admin.TabularInline):
    model = Perk
    extra = 0


@admin.register(Place)
class PlaceAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "hourly_rate", "currency", "minimum_hours", "full_day_hours")
    list_filter = ("currency",)
    search_fields = ("title", "address", "owner__email")
    inlines = [RefundTermInline, PerkInline]
