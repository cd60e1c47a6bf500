# models.py (Django 5.x) - Razpored (clinic roster)
#
# Departments group workstations ("delovišča") and staff.
# A ScheduleEntry is the roster slot for one day at one workstation;
# Assignments bind staff members to it.

from __future__ import annotations

from django.db import models


class Department(models.Model):
    """An organizational unit ("oddelek") of the clinic."""

    name = models.CharField(max_length=120, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Workstation(models.Model):
    """
    A post staff are rostered to on a given day.
    Without any department link it belongs to the clinic-wide scope.
    """

    name = models.CharField(max_length=120)
    departments = models.ManyToManyField(
        Department,
        through="DepartmentWorkstation",
        related_name="workstations",
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.name

    @property
    def is_clinic_wide(self) -> bool:
        return not self.department_links.exists()


class DepartmentWorkstation(models.Model):
    """Link between a department and a workstation, carrying its display order."""

    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name="workstation_links")
    workstation = models.ForeignKey(Workstation, on_delete=models.CASCADE, related_name="department_links")
    # Not unique at the DB level: a reorder rewrites indices row by row.
    sort_index = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_index", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["department", "workstation"],
                name="unique_department_workstation",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.department} / {self.workstation} ({self.sort_index})"


class StaffMember(models.Model):
    """A doctor ("zdravnik") that can be assigned to roster cells."""

    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=80)
    email = models.EmailField(blank=True, default="")
    short_code = models.CharField(max_length=10, unique=True)  # "JK" - shown in grid cells
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="staff_members",
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["short_code"]

    def __str__(self) -> str:
        return f"{self.short_code} {self.first_name} {self.last_name}".strip()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ScheduleEntry(models.Model):
    """
    Roster slot for one date at one workstation.
    Created on the first assignment to the cell; kept when it becomes empty.
    """

    date = models.DateField()
    workstation = models.ForeignKey(Workstation, on_delete=models.CASCADE, related_name="schedule_entries")
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="schedule_entries",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "workstation_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["date", "workstation"],
                name="unique_entry_per_day_workstation",
            ),
        ]
        indexes = [
            models.Index(fields=["date"], name="schedule_entry_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.date:%Y-%m-%d} {self.workstation}"


class Assignment(models.Model):
    """A staff member rostered into a ScheduleEntry."""

    entry = models.ForeignKey(ScheduleEntry, on_delete=models.CASCADE, related_name="assignments")
    staff_member = models.ForeignKey(StaffMember, on_delete=models.CASCADE, related_name="assignments")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "staff_member"],
                name="unique_assignment_per_entry",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.staff_member.short_code} @ {self.entry}"


class Revision(models.Model):
    """
    Named change counter. The "assignments" row moves with every Assignment
    write, inside the same transaction, so open grids can poll it.
    """

    ASSIGNMENTS = "assignments"

    name = models.CharField(max_length=40, unique=True)
    value = models.PositiveBigIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.name}={self.value}"
