"""Django admin configuration for razpored app."""

from django.contrib import admin

from .models import Assignment, Department, DepartmentWorkstation, ScheduleEntry, StaffMember, Workstation


class DepartmentWorkstationInline(admin.TabularInline):
    model = DepartmentWorkstation
    extra = 0
    ordering = ["sort_index"]


class AssignmentInline(admin.TabularInline):
    model = Assignment
    extra = 0
    autocomplete_fields = ["staff_member"]


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    """Admin for departments."""
    list_display = ["name", "created_at"]
    search_fields = ["name"]
    ordering = ["name"]


@admin.register(Workstation)
class WorkstationAdmin(admin.ModelAdmin):
    """Admin for workstations with their department links and order."""
    list_display = ["name", "created_at"]
    list_filter = ["departments"]
    search_fields = ["name"]
    inlines = [DepartmentWorkstationInline]


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    """Admin for staff members."""
    list_display = ["short_code", "first_name", "last_name", "department", "is_active"]
    list_filter = ["department", "is_active"]
    list_editable = ["is_active"]
    search_fields = ["short_code", "first_name", "last_name", "email"]
    ordering = ["short_code"]


@admin.register(ScheduleEntry)
class ScheduleEntryAdmin(admin.ModelAdmin):
    """Admin for roster entries; mainly for inspecting the grid's raw data."""
    list_display = ["date", "workstation", "department", "created_at"]
    list_filter = ["department", "date"]
    search_fields = ["workstation__name"]
    date_hierarchy = "date"
    inlines = [AssignmentInline]
