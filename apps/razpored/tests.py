"""
Tests for the Razpored (roster) application.

This module tests:
- Model constraints
- Grid axes (days, weeks, workstation order)
- Assignment cache, mutator, ordering and sync
- Views (grid pages, HTMX cell endpoints, CRUD screens)

Uses Django TestCase with pytest-django compatibility.
"""

import json
from datetime import date
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from .cache import EMPTY_CELL, AssignmentCache
from .exceptions import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .grid import GridBuilder, Period, View, month_days, month_weeks
from .models import (
    Assignment,
    Department,
    DepartmentWorkstation,
    Revision,
    ScheduleEntry,
    StaffMember,
    Workstation,
)
from .scope import ALL, AllScope, DepartmentScope, parse_scope
from .session import GridSession
from .store import DomainStore, StaffRef
from .sync import ChangeChannel, RevisionPollingChannel, current_revision

User = get_user_model()

MARCH_5 = date(2024, 3, 5)


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_user(username="testuser", password="testpass123", **kwargs):
    """Create and return a test user."""
    return User.objects.create_user(username=username, password=password, **kwargs)


def create_department(name="Kirurgija"):
    return Department.objects.create(name=name)


def create_workstation(name="OR-1", department=None, sort_index=0):
    """Create a workstation, optionally linked to ``department`` at ``sort_index``."""
    workstation = Workstation.objects.create(name=name)
    if department is not None:
        DepartmentWorkstation.objects.create(
            department=department,
            workstation=workstation,
            sort_index=sort_index,
        )
    return workstation


def create_staff(short_code="JK", department=None, first_name="Janez", last_name="Kranjec", **kwargs):
    """Create and return a test StaffMember."""
    return StaffMember.objects.create(
        first_name=first_name,
        last_name=last_name,
        short_code=short_code,
        department=department,
        **kwargs,
    )


def create_surgery():
    """Surgery department with workstations A and B and staff member JK."""
    surgery = create_department("Surgery")
    a = create_workstation("A", surgery, 0)
    b = create_workstation("B", surgery, 1)
    jk = create_staff("JK", surgery)
    return surgery, a, b, jk


def open_session(department=None, year=2024, month=3, view=View.MONTH):
    scope = DepartmentScope(department.pk) if department is not None else ALL
    return GridSession.open(Period(year, month, view), scope)


# =============================================================================
# MODEL TESTS
# =============================================================================


class ModelConstraintTests(TestCase):
    """Tests for the roster model constraints."""

    def test_one_entry_per_day_and_workstation(self):
        """A second entry for the same date and workstation is rejected."""
        workstation = create_workstation()
        ScheduleEntry.objects.create(date=MARCH_5, workstation=workstation)

        with self.assertRaises(IntegrityError), transaction.atomic():
            ScheduleEntry.objects.create(date=MARCH_5, workstation=workstation)

    def test_staff_member_assigned_once_per_entry(self):
        workstation = create_workstation()
        entry = ScheduleEntry.objects.create(date=MARCH_5, workstation=workstation)
        jk = create_staff()
        Assignment.objects.create(entry=entry, staff_member=jk)

        with self.assertRaises(IntegrityError), transaction.atomic():
            Assignment.objects.create(entry=entry, staff_member=jk)

    def test_deleting_department_keeps_workstations_and_entries(self):
        """Workstations lose the link; entries lose the department."""
        surgery, a, _, _ = create_surgery()
        entry = ScheduleEntry.objects.create(date=MARCH_5, workstation=a, department=surgery)

        surgery.delete()

        a.refresh_from_db()
        entry.refresh_from_db()
        self.assertTrue(a.is_clinic_wide)
        self.assertIsNone(entry.department)

    def test_deleting_workstation_removes_its_entries(self):
        workstation = create_workstation()
        entry = ScheduleEntry.objects.create(date=MARCH_5, workstation=workstation)
        Assignment.objects.create(entry=entry, staff_member=create_staff())

        workstation.delete()

        self.assertFalse(ScheduleEntry.objects.exists())
        self.assertFalse(Assignment.objects.exists())

    def test_staff_full_name(self):
        jk = create_staff()

        self.assertEqual(jk.full_name, "Janez Kranjec")
        self.assertEqual(str(jk), "JK Janez Kranjec")


# =============================================================================
# SCOPE TESTS
# =============================================================================


class ScopeTests(TestCase):
    """Tests for parse_scope()."""

    def test_empty_value_means_all(self):
        self.assertIsInstance(parse_scope(None), AllScope)
        self.assertIsInstance(parse_scope(""), AllScope)

    def test_department_id(self):
        scope = parse_scope("7")

        self.assertEqual(scope, DepartmentScope(7))
        self.assertEqual(scope.as_param(), "7")

    def test_scope_instance_passes_through(self):
        self.assertIs(parse_scope(ALL), ALL)

    def test_invalid_values_rejected(self):
        for value in ["abc", "0", "-3"]:
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    parse_scope(value)

    def test_all_scope_has_no_department(self):
        self.assertIsNone(ALL.department_id)
        self.assertEqual(ALL.as_param(), "")


# =============================================================================
# GRID AXES TESTS
# =============================================================================


class MonthDaysTests(TestCase):
    """The day axis always matches the calendar."""

    def test_day_counts(self):
        cases = [
            (2024, 1, 31),
            (2024, 2, 29),
            (2023, 2, 28),
            (1900, 2, 28),
            (2000, 2, 29),
            (2024, 4, 30),
            (2024, 12, 31),
        ]
        for year, month, expected in cases:
            with self.subTest(year=year, month=month):
                days = month_days(year, month)
                self.assertEqual(len(days), expected)
                self.assertEqual(days[0], date(year, month, 1))
                self.assertEqual(days[-1], date(year, month, expected))

    def test_february_29_only_in_leap_years(self):
        self.assertIn(date(2024, 2, 29), month_days(2024, 2))
        self.assertNotIn(29, [day.day for day in month_days(2023, 2)])

    def test_invalid_month_rejected(self):
        with self.assertRaises(ValidationError):
            month_days(2024, 13)
        with self.assertRaises(ValidationError):
            Period(2024, 0)


class MonthWeeksTests(TestCase):
    """Tests for the weekly layout."""

    def test_weeks_start_on_monday_by_default(self):
        weeks = month_weeks(2024, 2)

        self.assertEqual(weeks[0][0], date(2024, 1, 29))
        self.assertEqual(weeks[-1][-1], date(2024, 3, 3))
        self.assertEqual(len(weeks), 5)
        for week in weeks:
            self.assertEqual(len(week), 7)
            self.assertEqual(week[0].weekday(), 0)

    def test_weeks_cover_every_day_of_the_month(self):
        for month in range(1, 13):
            with self.subTest(month=month):
                covered = [day for week in month_weeks(2024, month) for day in week]
                for day in month_days(2024, month):
                    self.assertIn(day, covered)
                self.assertEqual(len(covered), len(set(covered)))

    def test_explicit_week_start(self):
        weeks = month_weeks(2024, 2, week_start=6)

        self.assertEqual(weeks[0][0], date(2024, 1, 28))
        self.assertEqual(weeks[-1][-1], date(2024, 3, 2))

    @override_settings(RAZPORED_WEEK_START=6)
    def test_week_start_from_settings(self):
        period = Period(2024, 2, View.WEEK)

        self.assertEqual(period.week_start, 6)
        self.assertEqual(period.bounds, (date(2024, 1, 28), date(2024, 3, 2)))


class PeriodTests(TestCase):
    """Tests for Period."""

    def test_month_view_is_a_single_row_of_days(self):
        period = Period(2024, 3)

        self.assertEqual(len(period.weeks), 1)
        self.assertEqual(period.bounds, (date(2024, 3, 1), date(2024, 3, 31)))
        self.assertFalse(period.contains(date(2024, 2, 29)))

    def test_week_view_includes_neighbouring_days(self):
        period = Period(2024, 3, View.WEEK)

        self.assertEqual(period.bounds, (date(2024, 2, 26), date(2024, 3, 31)))
        self.assertTrue(period.contains(date(2024, 2, 26)))

    def test_view_accepts_string(self):
        self.assertIs(Period(2024, 3, "week").view, View.WEEK)

    def test_shifted(self):
        self.assertEqual(Period(2024, 12).shifted(1), Period(2025, 1))
        self.assertEqual(Period(2024, 1).shifted(-1), Period(2023, 12))
        self.assertEqual(Period(2024, 3).shifted(-12), Period(2023, 3))


class GridBuilderTests(TestCase):
    """Tests for workstation order on the grid axes."""

    def setUp(self):
        self.surgery = create_department()
        self.ward = create_workstation("Ward", self.surgery, 2)
        self.or1 = create_workstation("OR-1", self.surgery, 0)
        self.or2 = create_workstation("OR-2", self.surgery, 1)
        self.clinic = create_workstation("Ambulanta")
        self.builder = GridBuilder(DomainStore())

    def test_department_workstations_sorted_by_order_index(self):
        axes = self.builder.build(Period(2024, 3), DepartmentScope(self.surgery.pk))

        self.assertEqual([ws.name for ws in axes.workstations], ["OR-1", "OR-2", "Ward"])
        self.assertEqual([ws.order_index for ws in axes.workstations], [0, 1, 2])
        self.assertEqual(len(axes.days), 31)

    def test_all_scope_lists_every_workstation(self):
        rows = self.builder.workstations(ALL)

        self.assertEqual(
            [ws.id for ws in rows],
            [self.ward.pk, self.or1.pk, self.or2.pk, self.clinic.pk],
        )
        self.assertTrue(all(ws.order_index is None for ws in rows))

    def test_equal_indices_fall_back_to_link_order(self):
        other = create_department("Interna")
        first = create_workstation("X", other, 0)
        second = create_workstation("Y", other, 0)

        rows = self.builder.workstations(DepartmentScope(other.pk))

        self.assertEqual([ws.id for ws in rows], [first.pk, second.pk])

    def test_order_is_cached_until_invalidated(self):
        scope = DepartmentScope(self.surgery.pk)
        self.builder.workstations(scope)
        DepartmentWorkstation.objects.filter(workstation=self.ward).update(sort_index=0)
        DepartmentWorkstation.objects.filter(workstation=self.or1).update(sort_index=2)

        self.assertEqual(self.builder.workstations(scope)[0].name, "OR-1")

        self.builder.invalidate(scope)

        self.assertEqual(self.builder.workstations(scope)[0].name, "Ward")


# =============================================================================
# DOMAIN STORE TESTS
# =============================================================================


class DomainStoreTests(TestCase):
    """Tests for the ORM-backed domain store."""

    def setUp(self):
        self.store = DomainStore()
        self.surgery, self.a, self.b, self.jk = create_surgery()
        self.scope = DepartmentScope(self.surgery.pk)

    def test_create_entry_twice_raises_conflict(self):
        self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)

        with self.assertRaises(ConflictError):
            self.store.create_schedule_entry(MARCH_5, self.a.pk, ALL)

        self.assertEqual(ScheduleEntry.objects.count(), 1)

    def test_insert_assignment_twice_raises_duplicate(self):
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)
        self.store.insert_assignment(entry_id, self.jk.pk)

        with self.assertRaises(DuplicateError):
            self.store.insert_assignment(entry_id, self.jk.pk)

    def test_list_entries_filtered_by_department(self):
        """A department sees the entries of its own workstations only."""
        in_surgery = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)
        clinic = create_workstation("Ambulanta")
        self.store.create_schedule_entry(MARCH_5, clinic.pk, ALL)
        self.store.insert_assignment(in_surgery, self.jk.pk)

        rows = self.store.list_schedule_entries(date(2024, 3, 1), date(2024, 3, 31), self.scope)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].entry_id, in_surgery)
        self.assertEqual(rows[0].assignments, [StaffRef(self.jk.pk, "JK")])
        self.assertEqual(
            len(self.store.list_schedule_entries(date(2024, 3, 1), date(2024, 3, 31), ALL)),
            2,
        )

    def test_list_entries_includes_entries_created_without_department(self):
        """An unscoped entry on a department workstation shows in that department."""
        entry_id = self.store.create_schedule_entry(MARCH_5, self.b.pk, ALL)
        self.store.insert_assignment(entry_id, self.jk.pk)

        rows = self.store.list_schedule_entries(date(2024, 3, 1), date(2024, 3, 31), self.scope)

        self.assertEqual([row.entry_id for row in rows], [entry_id])
        self.assertEqual(rows[0].assignments, [StaffRef(self.jk.pk, "JK")])

    def test_list_entries_of_shared_workstation(self):
        """A workstation linked to two departments shows its entry in both, once."""
        other = create_department("Interna")
        DepartmentWorkstation.objects.create(department=other, workstation=self.a, sort_index=3)
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)

        for scope in (self.scope, DepartmentScope(other.pk)):
            rows = self.store.list_schedule_entries(date(2024, 3, 1), date(2024, 3, 31), scope)
            self.assertEqual([row.entry_id for row in rows], [entry_id])

    def test_list_entry_staff(self):
        mn = create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)
        self.store.insert_assignment(entry_id, mn.pk)
        self.store.insert_assignment(entry_id, self.jk.pk)

        self.assertEqual(
            self.store.list_entry_staff(entry_id),
            [StaffRef(mn.pk, "MN"), StaffRef(self.jk.pk, "JK")],
        )

    def test_list_entries_respects_date_range(self):
        self.store.create_schedule_entry(date(2024, 2, 29), self.a.pk, self.scope)

        rows = self.store.list_schedule_entries(date(2024, 3, 1), date(2024, 3, 31), self.scope)

        self.assertEqual(rows, [])

    def test_get_schedule_entry_ignores_department(self):
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, ALL)

        self.assertEqual(self.store.get_schedule_entry(MARCH_5, self.a.pk), entry_id)
        self.assertIsNone(self.store.get_schedule_entry(MARCH_5, self.b.pk))

    def test_update_order_index_of_unlinked_workstation(self):
        stranger = create_workstation("Ambulanta")

        with self.assertRaises(NotFoundError):
            self.store.update_workstation_order_index(self.surgery.pk, stranger.pk, 0)

    def test_get_staff(self):
        self.assertEqual(self.store.get_staff(self.jk.pk), StaffRef(self.jk.pk, "JK"))
        with self.assertRaises(NotFoundError):
            self.store.get_staff(9999)

    def test_list_staff_active_in_department(self):
        create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")
        create_staff("AB", self.surgery, first_name="Ana", last_name="Bizjak", is_active=False)
        create_staff("ZZ", None, first_name="Zala", last_name="Zupan")

        codes = [member.short_code for member in self.store.list_staff(self.scope)]

        self.assertEqual(codes, ["JK", "MN"])
        self.assertEqual([m.short_code for m in self.store.list_staff(self.scope, "m")], ["MN"])
        self.assertEqual(len(self.store.list_staff(ALL)), 3)

    def test_database_failure_becomes_store_unavailable(self):
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)

        with patch.object(Assignment.objects, "create", side_effect=OperationalError("database is locked")):
            with self.assertRaises(StoreUnavailableError):
                self.store.insert_assignment(entry_id, self.jk.pk)

    def test_rejected_insert_for_missing_staff_member_is_not_a_duplicate(self):
        """A foreign key failure reports the missing staff member."""
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)

        with patch.object(
            Assignment.objects, "create", side_effect=IntegrityError("FOREIGN KEY constraint failed")
        ):
            with self.assertRaises(NotFoundError) as caught:
                self.store.insert_assignment(entry_id, 9999)

        self.assertNotIsInstance(caught.exception, DuplicateError)
        self.assertEqual(caught.exception.message, "Zdravnik ne obstaja")

    def test_rejected_insert_for_missing_entry_is_not_a_duplicate(self):
        with patch.object(
            Assignment.objects, "create", side_effect=IntegrityError("FOREIGN KEY constraint failed")
        ):
            with self.assertRaises(NotFoundError) as caught:
                self.store.insert_assignment(9999, self.jk.pk)

        self.assertEqual(caught.exception.message, "Vnos ne obstaja")

    def test_other_rejected_insert_becomes_store_unavailable(self):
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)

        with patch.object(
            Assignment.objects, "create", side_effect=IntegrityError("CHECK constraint failed")
        ):
            with self.assertRaises(StoreUnavailableError):
                self.store.insert_assignment(entry_id, self.jk.pk)

    def test_subscribe_delegates_to_channel(self):
        channel = ChangeChannel()
        store = DomainStore(channel)
        calls = []

        unsubscribe = store.subscribe_assignment_changes(lambda: calls.append(1))
        channel.notify()
        unsubscribe()
        channel.notify()

        self.assertEqual(calls, [1])
        self.assertEqual(channel.subscriber_count, 0)


# =============================================================================
# ASSIGNMENT CACHE TESTS
# =============================================================================


class AssignmentCacheTests(TestCase):
    """Tests for AssignmentCache."""

    def setUp(self):
        self.store = DomainStore()
        self.surgery, self.a, self.b, self.jk = create_surgery()
        self.scope = DepartmentScope(self.surgery.pk)

    def test_unknown_cell_resolves_empty(self):
        cache_ = AssignmentCache()

        self.assertIs(cache_.resolve(MARCH_5, self.a.pk), EMPTY_CELL)
        self.assertEqual(cache_.resolve(MARCH_5, self.a.pk).short_codes, [])

    def test_load_replaces_contents(self):
        entry_id = self.store.create_schedule_entry(MARCH_5, self.a.pk, self.scope)
        self.store.insert_assignment(entry_id, self.jk.pk)
        cache_ = AssignmentCache()
        cache_.append_staff(date(2024, 3, 6), self.b.pk, StaffRef(1, "XX"))

        cache_.load(self.store, Period(2024, 3), self.scope)

        self.assertEqual(len(cache_), 1)
        record = cache_.resolve(MARCH_5, self.a.pk)
        self.assertEqual(record.entry_id, entry_id)
        self.assertEqual(record.short_codes, ["JK"])
        self.assertIs(cache_.resolve(date(2024, 3, 6), self.b.pk), EMPTY_CELL)

    def test_append_staff_is_idempotent(self):
        cache_ = AssignmentCache()
        member = StaffRef(self.jk.pk, "JK")

        cache_.append_staff(MARCH_5, self.a.pk, member)
        record = cache_.append_staff(MARCH_5, self.a.pk, member)

        self.assertEqual(record.short_codes, ["JK"])

    def test_clear(self):
        cache_ = AssignmentCache()
        cache_.load(self.store, Period(2024, 3), self.scope)

        cache_.clear()

        self.assertEqual(len(cache_), 0)
        self.assertIsNone(cache_.period)
        self.assertIsNone(cache_.scope)


# =============================================================================
# ASSIGNMENT MUTATOR TESTS
# =============================================================================


class AssignmentMutatorTests(TestCase):
    """Tests for adding and removing assignments through a grid session."""

    def setUp(self):
        self.surgery, self.a, self.b, self.jk = create_surgery()
        self.mn = create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")
        self.session = open_session(self.surgery)
        self.addCleanup(self.session.close)

    def test_first_assignment_creates_entry(self):
        """Assigning JK to (2024-03-05, A) fills that cell only."""
        record = self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(ScheduleEntry.objects.count(), 1)
        self.assertEqual(Assignment.objects.count(), 1)
        entry = ScheduleEntry.objects.get()
        self.assertEqual(entry.department, self.surgery)
        self.assertEqual(record.entry_id, entry.pk)
        self.assertEqual(self.session.resolve(MARCH_5, self.a.pk).short_codes, ["JK"])
        self.assertEqual(self.session.resolve(MARCH_5, self.b.pk).short_codes, [])

    def test_add_twice_is_idempotent(self):
        self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        record = self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(Assignment.objects.count(), 1)
        self.assertEqual(record.short_codes, ["JK"])

    def test_staff_listed_in_assignment_order(self):
        self.session.add_assignment(MARCH_5, self.a.pk, self.mn.pk)
        self.session.add_assignment(MARCH_5, self.a.pk, StaffRef(self.jk.pk, "JK"))

        self.assertEqual(self.session.resolve(MARCH_5, self.a.pk).short_codes, ["MN", "JK"])
        self.assertEqual(ScheduleEntry.objects.count(), 1)

    def test_add_then_remove_leaves_empty_cell(self):
        """Round trip ends with the same empty cell a fresh load shows."""
        self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        record = self.session.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(record.short_codes, [])
        self.assertFalse(Assignment.objects.exists())
        # Empty entries are kept
        self.assertEqual(ScheduleEntry.objects.count(), 1)

        fresh = open_session(self.surgery)
        self.addCleanup(fresh.close)
        self.assertEqual(
            fresh.resolve(MARCH_5, self.a.pk).short_codes,
            self.session.resolve(MARCH_5, self.a.pk).short_codes,
        )

    def test_remove_without_known_entry_raises(self):
        with self.assertRaises(NotFoundError):
            self.session.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

    def test_remove_after_cache_invalidation_raises(self):
        self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        self.session.cache.clear()

        with self.assertRaises(NotFoundError):
            self.session.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(Assignment.objects.count(), 1)

    def test_concurrent_add_reuses_entry(self):
        """Two sessions filling the same empty cell end with one entry."""
        other = open_session(self.surgery)
        self.addCleanup(other.close)

        self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        record = other.add_assignment(MARCH_5, self.a.pk, self.mn.pk)

        self.assertEqual(ScheduleEntry.objects.count(), 1)
        self.assertEqual(Assignment.objects.count(), 2)
        self.assertEqual(record.entry_id, ScheduleEntry.objects.get().pk)
        self.assertEqual(record.short_codes, ["JK", "MN"])

        other.reload()
        self.assertEqual(other.resolve(MARCH_5, self.a.pk).short_codes, ["JK", "MN"])

    def test_concurrent_duplicate_is_not_an_error(self):
        other = open_session(self.surgery)
        self.addCleanup(other.close)

        self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        record = other.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(Assignment.objects.count(), 1)
        self.assertEqual(record.short_codes, ["JK"])

    def test_entry_created_under_other_scope_is_reused(self):
        unscoped = open_session()
        self.addCleanup(unscoped.close)
        unscoped.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        record = self.session.add_assignment(MARCH_5, self.a.pk, self.mn.pk)

        self.assertEqual(ScheduleEntry.objects.count(), 1)
        self.assertEqual(record.entry_id, ScheduleEntry.objects.get().pk)
        self.assertEqual(record.short_codes, ["JK", "MN"])

        fresh = open_session(self.surgery)
        self.addCleanup(fresh.close)
        self.assertEqual(fresh.resolve(MARCH_5, self.a.pk), self.session.resolve(MARCH_5, self.a.pk))

    def test_conflict_without_existing_entry_is_raised(self):
        with patch.object(
            self.session.store,
            "create_schedule_entry",
            side_effect=ConflictError("Vnos za ta dan in delovišče že obstaja"),
        ):
            with self.assertRaises(ConflictError):
                self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertIs(self.session.resolve(MARCH_5, self.a.pk), EMPTY_CELL)

    def test_store_failure_leaves_cell_unchanged(self):
        before = self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        with patch.object(
            self.session.store,
            "insert_assignment",
            side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
        ):
            with self.assertRaises(StoreUnavailableError):
                self.session.add_assignment(MARCH_5, self.a.pk, self.mn.pk)

        self.assertEqual(self.session.resolve(MARCH_5, self.a.pk), before)

    def test_stale_staff_member_leaves_cell_unchanged(self):
        """A staff member deleted meanwhile is reported, not listed in the cell."""
        before = self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        gone = StaffRef(9999, "XX")

        with patch.object(
            Assignment.objects, "create", side_effect=IntegrityError("FOREIGN KEY constraint failed")
        ):
            with self.assertRaises(NotFoundError):
                self.session.add_assignment(MARCH_5, self.a.pk, gone)

        self.assertEqual(self.session.resolve(MARCH_5, self.a.pk), before)
        self.assertFalse(self.session.resolve(MARCH_5, self.a.pk).has_staff(9999))

    def test_failed_remove_leaves_cell_unchanged(self):
        before = self.session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        with patch.object(
            self.session.store,
            "delete_assignment",
            side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
        ):
            with self.assertRaises(StoreUnavailableError):
                self.session.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(self.session.resolve(MARCH_5, self.a.pk), before)

    def test_day_outside_period_rejected(self):
        with self.assertRaises(ValidationError):
            self.session.add_assignment(date(2024, 4, 1), self.a.pk, self.jk.pk)

        self.assertFalse(ScheduleEntry.objects.exists())

    def test_unknown_staff_member_rejected(self):
        with self.assertRaises(NotFoundError):
            self.session.add_assignment(MARCH_5, self.a.pk, 9999)

        self.assertFalse(ScheduleEntry.objects.exists())


# =============================================================================
# ORDERING TESTS
# =============================================================================


class OrderingManagerTests(TestCase):
    """Tests for per-department workstation order."""

    def setUp(self):
        self.surgery = create_department()
        self.w1 = create_workstation("OR-1", self.surgery, 0)
        self.w2 = create_workstation("OR-2", self.surgery, 1)
        self.w3 = create_workstation("Ward", self.surgery, 2)
        self.session = open_session(self.surgery, view=View.WEEK)
        self.addCleanup(self.session.close)
        self.store = self.session.store

    def order(self):
        scope = DepartmentScope(self.surgery.pk)
        return [ws.id for ws in self.store.list_workstations(scope, ordered_by_index=True)]

    def test_reorder(self):
        result = self.session.reorder(self.surgery.pk, [self.w3.pk, self.w1.pk, self.w2.pk])

        self.assertEqual(result, [self.w3.pk, self.w1.pk, self.w2.pk])
        self.assertEqual(self.order(), [self.w3.pk, self.w1.pk, self.w2.pk])
        self.assertEqual(
            list(
                DepartmentWorkstation.objects.filter(department=self.surgery)
                .order_by("sort_index")
                .values_list("sort_index", flat=True)
            ),
            [0, 1, 2],
        )

    def test_reorder_refreshes_session_axes(self):
        self.session.reorder(self.surgery.pk, [self.w3.pk, self.w1.pk, self.w2.pk])

        self.assertEqual(
            [ws.id for ws in self.session.axes.workstations],
            [self.w3.pk, self.w1.pk, self.w2.pk],
        )

    def test_missing_workstations_keep_relative_order(self):
        result = self.session.reorder(self.surgery.pk, [self.w3.pk])

        self.assertEqual(result, [self.w3.pk, self.w1.pk, self.w2.pk])

    def test_duplicate_ids_rejected(self):
        with self.assertRaises(ValidationError):
            self.session.reorder(self.surgery.pk, [self.w1.pk, self.w1.pk])

    def test_unlinked_workstation_rolls_back_everything(self):
        stranger = create_workstation("Ambulanta")

        with self.assertRaises(NotFoundError):
            self.session.reorder(self.surgery.pk, [self.w3.pk, stranger.pk])

        self.assertEqual(self.order(), [self.w1.pk, self.w2.pk, self.w3.pk])

    def test_store_failure_during_reorder_keeps_order(self):
        """A failed write reports the order as unsaved and keeps the old one."""
        with patch.object(
            self.store,
            "update_workstation_order_index",
            side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
        ):
            with self.assertRaises(StoreUnavailableError) as caught:
                self.session.reorder(self.surgery.pk, [self.w3.pk, self.w1.pk, self.w2.pk])

        self.assertEqual(caught.exception.message, "Zaporedja ni bilo mogoče shraniti")
        self.assertEqual(caught.exception.details, {"department": self.surgery.pk})
        self.assertEqual(self.order(), [self.w1.pk, self.w2.pk, self.w3.pk])

    def test_reorder_only_touches_its_department(self):
        other = create_department("Interna")
        DepartmentWorkstation.objects.create(department=other, workstation=self.w1, sort_index=5)

        self.session.reorder(self.surgery.pk, [self.w3.pk, self.w2.pk, self.w1.pk])

        link = DepartmentWorkstation.objects.get(department=other, workstation=self.w1)
        self.assertEqual(link.sort_index, 5)

    def test_move(self):
        result = self.session.move_workstation(self.surgery.pk, 0, 2)

        self.assertEqual(result, [self.w2.pk, self.w3.pk, self.w1.pk])
        self.assertEqual(self.order(), result)

    def test_move_out_of_range(self):
        with self.assertRaises(ValidationError):
            self.session.move_workstation(self.surgery.pk, 0, 3)


# =============================================================================
# SYNC TESTS
# =============================================================================


class SyncListenerTests(TestCase):
    """Tests for reloading open grids on assignment changes."""

    def setUp(self):
        self.surgery, self.a, self.b, self.jk = create_surgery()
        self.watcher = open_session(self.surgery)
        self.editor = open_session(self.surgery)
        self.addCleanup(self.watcher.close)
        self.addCleanup(self.editor.close)

    def test_signal_channel_reloads_other_session(self):
        self.watcher.listen()

        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(self.watcher.resolve(MARCH_5, self.a.pk).short_codes, ["JK"])

        self.editor.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(self.watcher.resolve(MARCH_5, self.a.pk).short_codes, [])

    def test_closed_session_stops_listening(self):
        listener = self.watcher.listen()
        channel = self.watcher.store.channel

        self.watcher.close()

        self.assertFalse(listener.is_running)
        self.assertEqual(channel.subscriber_count, 0)
        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        self.assertIs(self.watcher.resolve(MARCH_5, self.a.pk), EMPTY_CELL)

    def test_revision_moves_on_every_change(self):
        start = current_revision()

        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        self.editor.remove_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(current_revision(), start + 2)

    def test_revision_rolls_back_with_the_write(self):
        """The counter is part of the write, so an aborted write leaves it alone."""
        start = current_revision()

        with self.assertRaises(RuntimeError), transaction.atomic():
            self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
            self.assertEqual(current_revision(), start + 1)
            raise RuntimeError("abort")

        self.assertEqual(current_revision(), start)
        self.assertFalse(Assignment.objects.exists())

    def test_revision_counter_is_stored_in_the_database(self):
        start = current_revision()

        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(Revision.objects.get(name=Revision.ASSIGNMENTS).value, start + 1)

    def test_missing_revision_row_is_recreated(self):
        Revision.objects.all().delete()
        self.assertEqual(current_revision(), 0)

        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertEqual(current_revision(), 1)

    def test_revision_read_failure_becomes_store_unavailable(self):
        with patch.object(Revision.objects, "filter", side_effect=OperationalError("database is locked")):
            with self.assertRaises(StoreUnavailableError):
                current_revision()

    def test_polling_channel(self):
        channel = RevisionPollingChannel()
        self.watcher.listen(channel)

        self.assertFalse(channel.poll())

        self.editor.add_assignment(MARCH_5, self.a.pk, self.jk.pk)

        self.assertIs(self.watcher.resolve(MARCH_5, self.a.pk), EMPTY_CELL)
        self.assertTrue(channel.poll())
        self.assertEqual(self.watcher.resolve(MARCH_5, self.a.pk).short_codes, ["JK"])
        self.assertFalse(channel.poll())

    def test_polling_channel_with_custom_source(self):
        revisions = iter([1, 1, 2])
        channel = RevisionPollingChannel(lambda: next(revisions))
        calls = []
        channel.subscribe(lambda: calls.append(1))

        self.assertFalse(channel.poll())
        self.assertTrue(channel.poll())
        self.assertEqual(calls, [1])

    def test_reload_failure_keeps_grid(self):
        channel = ChangeChannel()
        self.watcher.listen(channel)

        with patch.object(
            self.watcher,
            "reload",
            side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
        ):
            with self.assertLogs("apps.razpored.sync", level="WARNING"):
                channel.notify()

    def test_change_without_selection_ignored(self):
        channel = ChangeChannel()
        idle = GridSession()
        idle.listen(channel)
        self.addCleanup(idle.close)

        with patch.object(idle, "reload") as reload:
            channel.notify()

        reload.assert_not_called()


# =============================================================================
# VIEW TESTS
# =============================================================================


class GridViewTests(TestCase):
    """Tests for the monthly and weekly grid pages."""

    def setUp(self):
        """Set up test client, user and the Surgery department."""
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")
        self.surgery, self.a, self.b, self.jk = create_surgery()
        session = open_session(self.surgery)
        session.add_assignment(MARCH_5, self.a.pk, self.jk.pk)
        session.close()

    def test_login_required(self):
        response = Client().get(reverse("razpored:monthly"))

        self.assertEqual(response.status_code, 302)

    def test_monthly_view(self):
        response = self.client.get(
            reverse("razpored:monthly"),
            {"leto": 2024, "mesec": 3, "oddelek": self.surgery.pk},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context["day_rows"]), 31)
        self.assertContains(response, "JK")
        self.assertContains(response, f'id="cell-2024-03-05-{self.a.pk}"')
        self.assertTrue(response.context["can_reorder"])

    def test_monthly_view_defaults_to_current_month(self):
        response = self.client.get(reverse("razpored:home"))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.context["can_reorder"])

    def test_weekly_view(self):
        response = self.client.get(
            reverse("razpored:weekly"),
            {"leto": 2024, "mesec": 3, "oddelek": self.surgery.pk},
        )

        self.assertEqual(response.status_code, 200)
        weeks = response.context["weeks"]
        self.assertEqual(len(weeks), 5)
        self.assertEqual(weeks[0]["days"][0].day, date(2024, 2, 26))
        self.assertFalse(weeks[0]["days"][0].in_month)
        self.assertEqual([ws.name for ws, _ in weeks[0]["rows"]], ["A", "B"])
        self.assertContains(response, reverse("razpored:workstation_reorder", args=[self.surgery.pk]))

    def test_invalid_month(self):
        response = self.client.get(reverse("razpored:monthly"), {"leto": 2024, "mesec": 13})

        self.assertEqual(response.status_code, 400)

    def test_invalid_department(self):
        response = self.client.get(reverse("razpored:monthly"), {"oddelek": "abc"})

        self.assertEqual(response.status_code, 400)

    def test_grid_rows_unchanged_revision(self):
        response = self.client.get(
            reverse("razpored:grid_rows"),
            {"leto": 2024, "mesec": 3, "revision": current_revision()},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 204)

    def test_grid_rows_after_change(self):
        seen = current_revision()
        Assignment.objects.filter(staff_member=self.jk).delete()

        response = self.client.get(
            reverse("razpored:grid_rows"),
            {"leto": 2024, "mesec": 3, "oddelek": self.surgery.pk, "revision": seen},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "razpored/partials/_monthly_grid.html")
        self.assertNotContains(response, '<span class="staff">JK</span>')

    def test_change_during_page_load_is_picked_up_by_next_poll(self):
        """A write landing while the page loads makes the next poll re-render."""
        mn = create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")
        entry = ScheduleEntry.objects.get(date=MARCH_5, workstation=self.a)
        load_entries = DomainStore.list_schedule_entries

        def load_then_write(store, *args, **kwargs):
            rows = load_entries(store, *args, **kwargs)
            Assignment.objects.create(entry=entry, staff_member=mn)
            return rows

        params = {"leto": 2024, "mesec": 3, "oddelek": self.surgery.pk}
        with patch.object(DomainStore, "list_schedule_entries", autospec=True, side_effect=load_then_write):
            page = self.client.get(reverse("razpored:monthly"), params)
        self.assertNotContains(page, '<span class="staff">MN</span>')

        response = self.client.get(
            reverse("razpored:grid_rows"),
            {**params, "revision": page.context["revision"]},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '<span class="staff">MN</span>')

    def test_grid_rows_when_revision_unreadable(self):
        with patch("apps.razpored.views.current_revision", side_effect=StoreUnavailableError("x")):
            response = self.client.get(
                reverse("razpored:grid_rows"),
                {"leto": 2024, "mesec": 3, "revision": 1},
                HTTP_HX_REQUEST="true",
            )

        self.assertEqual(response.status_code, 204)

    def test_grid_rows_weekly(self):
        response = self.client.get(
            reverse("razpored:grid_rows"),
            {"pogled": "week", "leto": 2024, "mesec": 3},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "razpored/partials/_weekly_grid.html")


class CellViewTests(TestCase):
    """Tests for the HTMX cell endpoints."""

    def setUp(self):
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")
        self.surgery, self.a, self.b, self.jk = create_surgery()

    def url(self, name, day=MARCH_5, workstation=None):
        return reverse(f"razpored:{name}", args=[day, (workstation or self.a).pk])

    def toast(self, response):
        return json.loads(response["HX-Trigger"])["toast"]

    def test_cell_editor_lists_candidates(self):
        create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")

        response = self.client.get(self.url("cell_editor"), {"oddelek": self.surgery.pk})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([m.short_code for m in response.context["candidates"]], ["JK", "MN"])

    def test_cell_editor_search(self):
        create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")

        response = self.client.get(self.url("cell_editor"), {"oddelek": self.surgery.pk, "q": "mn"})

        self.assertEqual([m.short_code for m in response.context["candidates"]], ["MN"])

    def test_cell_editor_hides_assigned_staff(self):
        self.client.post(self.url("assignment_add"), {"staff_member": self.jk.pk})

        response = self.client.get(self.url("cell_editor"))

        self.assertEqual(response.context["candidates"], [])
        self.assertEqual(response.context["cell"].record.short_codes, ["JK"])

    def test_add_assignment(self):
        response = self.client.post(
            self.url("assignment_add"),
            {"staff_member": self.jk.pk, "oddelek": self.surgery.pk},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '<span class="staff">JK</span>')
        self.assertEqual(Assignment.objects.count(), 1)
        self.assertEqual(ScheduleEntry.objects.get().department, self.surgery)

    def test_add_assignment_without_staff_member(self):
        response = self.client.post(self.url("assignment_add"), {}, HTTP_HX_REQUEST="true")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.toast(response)["message"], "Zdravnik je obvezen")
        self.assertFalse(ScheduleEntry.objects.exists())

    def test_remove_assignment(self):
        self.client.post(self.url("assignment_add"), {"staff_member": self.jk.pk})

        response = self.client.post(
            self.url("assignment_remove"),
            {"staff_member": self.jk.pk},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, '<span class="staff">JK</span>')
        self.assertFalse(Assignment.objects.exists())

    def test_remove_from_empty_cell_shows_toast(self):
        response = self.client.post(
            self.url("assignment_remove"),
            {"staff_member": self.jk.pk},
            HTTP_HX_REQUEST="true",
        )

        self.assertEqual(response.status_code, 200)
        toast = self.toast(response)
        self.assertEqual(toast["level"], "error")
        self.assertEqual(toast["message"], "Za to celico ni razporeda")

    def test_store_failure_shows_toast_and_keeps_cell(self):
        self.client.post(self.url("assignment_add"), {"staff_member": self.jk.pk})
        mn = create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")

        with patch.object(
            DomainStore,
            "insert_assignment",
            side_effect=StoreUnavailableError("Podatkovna baza trenutno ni dosegljiva"),
        ):
            response = self.client.post(self.url("assignment_add"), {"staff_member": mn.pk})

        self.assertEqual(self.toast(response)["message"], "Podatkovna baza trenutno ni dosegljiva")
        self.assertContains(response, '<span class="staff">JK</span>')
        self.assertNotContains(response, '<span class="staff">MN</span>')

    def test_unknown_workstation(self):
        response = self.client.post(
            reverse("razpored:assignment_add", args=[MARCH_5, 9999]),
            {"staff_member": self.jk.pk},
        )

        self.assertEqual(response.status_code, 404)

    def test_add_requires_post(self):
        response = self.client.get(self.url("assignment_add"))

        self.assertEqual(response.status_code, 405)


class WorkstationReorderViewTests(TestCase):
    """Tests for the drag-reorder endpoint."""

    def setUp(self):
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")
        self.surgery = create_department()
        self.w1 = create_workstation("OR-1", self.surgery, 0)
        self.w2 = create_workstation("OR-2", self.surgery, 1)
        self.w3 = create_workstation("Ward", self.surgery, 2)
        self.url = reverse("razpored:workstation_reorder", args=[self.surgery.pk])

    def test_reorder(self):
        response = self.client.post(self.url, {"workstation": [self.w3.pk, self.w1.pk, self.w2.pk]})

        self.assertEqual(response.status_code, 204)
        toast = json.loads(response["HX-Trigger"])["toast"]
        self.assertEqual(toast, {"level": "success", "message": "Zaporedje shranjeno"})
        self.assertEqual(
            list(self.surgery.workstation_links.values_list("workstation_id", flat=True)),
            [self.w3.pk, self.w1.pk, self.w2.pk],
        )

    def test_reorder_with_foreign_workstation(self):
        stranger = create_workstation("Ambulanta")

        response = self.client.post(self.url, {"workstation": [stranger.pk, self.w1.pk]})

        self.assertEqual(response.status_code, 204)
        toast = json.loads(response["HX-Trigger"])["toast"]
        self.assertEqual(toast["level"], "error")
        self.assertEqual(
            list(self.surgery.workstation_links.values_list("workstation_id", flat=True)),
            [self.w1.pk, self.w2.pk, self.w3.pk],
        )

    def test_unknown_department(self):
        response = self.client.post(reverse("razpored:workstation_reorder", args=[9999]), {})

        self.assertEqual(response.status_code, 404)


class DepartmentViewTests(TestCase):
    """Tests for the department screens."""

    def setUp(self):
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")

    def test_list(self):
        create_department("Kirurgija")

        response = self.client.get(reverse("razpored:departments"))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Kirurgija")

    def test_add(self):
        response = self.client.post(reverse("razpored:department_add"), {"name": "  Interna "})

        self.assertRedirects(response, reverse("razpored:departments"))
        self.assertTrue(Department.objects.filter(name="Interna").exists())

    def test_add_requires_name(self):
        response = self.client.post(reverse("razpored:department_add"), {"name": ""})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["errors"], ["Naziv je obvezen"])
        self.assertFalse(Department.objects.exists())

    def test_add_duplicate_name(self):
        create_department("Kirurgija")

        response = self.client.post(reverse("razpored:department_add"), {"name": "kirurgija"})

        self.assertEqual(response.context["errors"], ["Oddelek 'kirurgija' že obstaja"])
        self.assertEqual(Department.objects.count(), 1)

    def test_edit(self):
        department = create_department("Kirurgija")

        response = self.client.post(
            reverse("razpored:department_edit", args=[department.pk]),
            {"name": "Kirurgija 2"},
        )

        self.assertEqual(response.status_code, 302)
        department.refresh_from_db()
        self.assertEqual(department.name, "Kirurgija 2")

    def test_edit_keeping_own_name(self):
        department = create_department("Kirurgija")

        response = self.client.post(
            reverse("razpored:department_edit", args=[department.pk]),
            {"name": "Kirurgija"},
        )

        self.assertEqual(response.status_code, 302)

    def test_delete(self):
        department = create_department("Kirurgija")

        response = self.client.post(reverse("razpored:department_delete", args=[department.pk]))

        self.assertEqual(response.status_code, 302)
        self.assertFalse(Department.objects.exists())


class WorkstationViewTests(TestCase):
    """Tests for the workstation screens."""

    def setUp(self):
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")
        self.surgery = create_department("Kirurgija")
        self.internal = create_department("Interna")

    def test_list_filters(self):
        create_workstation("OR-1", self.surgery)
        create_workstation("Ambulanta")
        url = reverse("razpored:workstations")

        clinic = self.client.get(url, {"oddelek": "klinika"})
        surgery = self.client.get(url, {"oddelek": self.surgery.pk})
        search = self.client.get(url, {"q": "amb"})

        self.assertEqual([ws.name for ws in clinic.context["workstations"]], ["Ambulanta"])
        self.assertEqual([ws.name for ws in surgery.context["workstations"]], ["OR-1"])
        self.assertEqual([ws.name for ws in search.context["workstations"]], ["Ambulanta"])

    def test_add_appends_to_department_order(self):
        create_workstation("OR-1", self.surgery, 0)
        create_workstation("OR-2", self.surgery, 4)

        response = self.client.post(
            reverse("razpored:workstation_add"),
            {"name": "Ward", "departments": [self.surgery.pk, self.internal.pk]},
        )

        self.assertEqual(response.status_code, 302)
        ward = Workstation.objects.get(name="Ward")
        self.assertEqual(
            DepartmentWorkstation.objects.get(department=self.surgery, workstation=ward).sort_index,
            5,
        )
        self.assertEqual(
            DepartmentWorkstation.objects.get(department=self.internal, workstation=ward).sort_index,
            0,
        )

    def test_add_without_department_is_clinic_wide(self):
        self.client.post(reverse("razpored:workstation_add"), {"name": "Ambulanta"})

        self.assertTrue(Workstation.objects.get(name="Ambulanta").is_clinic_wide)

    def test_add_requires_name(self):
        response = self.client.post(reverse("razpored:workstation_add"), {"name": " "})

        self.assertEqual(response.context["errors"], ["Naziv je obvezen"])
        self.assertFalse(Workstation.objects.exists())

    def test_edit_keeps_existing_order_index(self):
        workstation = create_workstation("OR-1", self.surgery, 3)

        self.client.post(
            reverse("razpored:workstation_edit", args=[workstation.pk]),
            {"name": "OR-1", "departments": [self.surgery.pk, self.internal.pk]},
        )

        self.assertEqual(
            DepartmentWorkstation.objects.get(department=self.surgery, workstation=workstation).sort_index,
            3,
        )
        self.assertEqual(workstation.departments.count(), 2)

    def test_edit_unlinks_department(self):
        workstation = create_workstation("OR-1", self.surgery, 0)

        self.client.post(
            reverse("razpored:workstation_edit", args=[workstation.pk]),
            {"name": "OR-1"},
        )

        self.assertTrue(workstation.is_clinic_wide)

    def test_delete(self):
        workstation = create_workstation("OR-1", self.surgery, 0)

        self.client.post(reverse("razpored:workstation_delete", args=[workstation.pk]))

        self.assertFalse(Workstation.objects.exists())
        self.assertFalse(DepartmentWorkstation.objects.exists())


class StaffViewTests(TestCase):
    """Tests for the staff screens."""

    def setUp(self):
        self.client = Client()
        self.user = create_user()
        self.client.login(username="testuser", password="testpass123")
        self.surgery = create_department("Kirurgija")

    def form(self, **overrides):
        data = {
            "first_name": "Janez",
            "last_name": "Kranjec",
            "email": "janez@example.com",
            "short_code": "JK",
            "department": str(self.surgery.pk),
            "is_active": "on",
        }
        data.update(overrides)
        return data

    def test_list_search(self):
        create_staff("JK", self.surgery)
        create_staff("MN", self.surgery, first_name="Maja", last_name="Novak")

        response = self.client.get(reverse("razpored:staff"), {"q": "novak"})

        self.assertEqual([m.short_code for m in response.context["staff"]], ["MN"])

    def test_add(self):
        response = self.client.post(reverse("razpored:staff_add"), self.form())

        self.assertRedirects(response, reverse("razpored:staff"))
        member = StaffMember.objects.get()
        self.assertEqual(member.department, self.surgery)
        self.assertTrue(member.is_active)

    def test_add_required_fields(self):
        response = self.client.post(
            reverse("razpored:staff_add"),
            self.form(first_name="", last_name="", short_code=""),
        )

        self.assertEqual(
            response.context["errors"],
            ["Ime je obvezno", "Priimek je obvezen", "Skrajšava je obvezna"],
        )
        self.assertFalse(StaffMember.objects.exists())

    def test_add_duplicate_short_code(self):
        create_staff("JK", self.surgery)

        response = self.client.post(reverse("razpored:staff_add"), self.form(short_code="jk"))

        self.assertEqual(response.context["errors"], ["Skrajšava 'jk' že obstaja"])

    def test_add_unknown_department(self):
        response = self.client.post(reverse("razpored:staff_add"), self.form(department="9999"))

        self.assertEqual(response.context["errors"], ["Izbrani oddelek ne obstaja"])

    def test_edit_deactivates(self):
        member = create_staff("JK", self.surgery)
        data = self.form()
        del data["is_active"]

        self.client.post(reverse("razpored:staff_edit", args=[member.pk]), data)

        member.refresh_from_db()
        self.assertFalse(member.is_active)

    def test_edit_form_prefilled(self):
        member = create_staff("JK", self.surgery)

        response = self.client.get(reverse("razpored:staff_edit", args=[member.pk]))

        self.assertEqual(response.context["data"]["short_code"], "JK")
        self.assertEqual(response.context["data"]["department"], str(self.surgery.pk))

    def test_delete_removes_assignments(self):
        surgery, a, _, jk = create_surgery()
        session = open_session(surgery)
        session.add_assignment(MARCH_5, a.pk, jk.pk)
        session.close()

        self.client.post(reverse("razpored:staff_delete", args=[jk.pk]))

        self.assertFalse(Assignment.objects.exists())
        self.assertTrue(ScheduleEntry.objects.exists())
