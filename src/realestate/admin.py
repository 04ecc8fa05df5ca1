"""Django admin for real-estate projects."""
from django.contrib import admin

from realestate.models import Developer, Project, ProjectTier, Registration


@admin.register(Developer)
class DeveloperAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "user")
    search_fields = ("name", "email")


class ProjectTierInline(admin.TabularInline):
    model = ProjectTier
    extra = 0
    ordering = ("min_participants",)
    fields = ("min_participants", "max_participants", "discount_percent", "explicit_price", "commission_percent")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = (
        "name", "developer", "city", "current_stage",
        "confirmed_count", "waiting_count", "total_capacity", "is_published",
    )
    list_filter = ("current_stage", "city", "is_published")
    search_fields = ("name", "city", "developer__name")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ProjectTierInline]
    readonly_fields = (
        "issued_positions", "confirmed_count", "waiting_count",
        "stage_changed_at", "created_at", "updated_at",
    )


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = (
        "position", "project", "full_name", "admission_status",
        "funnel_status", "price_paid", "consent_data_transfer", "cancelled_at",
    )
    list_filter = ("admission_status", "funnel_status", "project")
    search_fields = ("full_name", "email", "phone", "project__name")
    ordering = ("project", "position")
    readonly_fields = (
        "position", "admission_status", "price_paid", "tier_index", "position_in_tier",
        "joined_at", "event_rsvp_at", "final_registered_at", "created_at", "updated_at",
    )
