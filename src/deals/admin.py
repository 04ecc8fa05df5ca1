"""Django admin for the deals module."""
from django.contrib import admin

from deals.models import Deal, DealTier, Participant


class DealTierInline(admin.TabularInline):
    model = DealTier
    extra = 0
    ordering = ("min_participants",)
    fields = ("min_participants", "max_participants", "discount_percent", "explicit_price", "commission_percent")


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    list_display = (
        "name", "supplier", "status", "original_price_display",
        "confirmed_count", "waiting_count", "total_capacity", "end_time",
    )
    list_filter = ("status", "category")
    search_fields = ("name", "supplier__email")
    inlines = [DealTierInline]
    readonly_fields = (
        "issued_positions", "confirmed_count", "waiting_count",
        "activated_at", "closed_at", "created_at", "updated_at",
    )

    def original_price_display(self, obj):
        return f"{obj.original_price:,} FCFA"
    original_price_display.short_description = "Prix d'origine"


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ("position", "deal", "name", "admission_status", "price_paid", "joined_at", "cancelled_at")
    list_filter = ("admission_status", "deal")
    search_fields = ("name", "email", "deal__name")
    ordering = ("deal", "position")
    readonly_fields = (
        "position", "admission_status", "price_paid", "tier_index",
        "position_in_tier", "joined_at", "created_at", "updated_at",
    )
