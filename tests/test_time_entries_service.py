from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
import unittest
from unittest.mock import patch

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timetrack.db import Base
from timetrack.errors import (
    BackdateLimitExceededError,
    CrossTenantError,
    ForbiddenError,
    FutureDateNotAllowedError,
    InvalidIntervalError,
    ProjectNotFoundError,
    UserNotFoundError,
    WorkspaceMismatchError,
    WorkspaceNotFoundError,
)
from timetrack.models import (
    Company,
    EntryStatus,
    Project,
    RecordStatus,
    ShiftPolicy,
    TimeEntry,
    TimeEntrySplit,
    User,
    UserRole,
    UserStatus,
    Workspace,
)
from timetrack.services.time_entries import create_time_entry, list_time_entry_splits, local_start_is_future

NOW_UTC = datetime(2026, 2, 12, 10, 0, tzinfo=timezone.utc)


def _make_session() -> Session:
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


class _TenantFixture(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()
        self.db.add_all(
            [
                Company(tenant_id="acme", name="Acme", timezone="Europe/Helsinki"),
                Company(tenant_id="globex", name="Globex", timezone="Europe/Helsinki"),
            ]
        )
        self.workspace = Workspace(tenant_id="acme", name="Operations")
        self.other_workspace = Workspace(tenant_id="acme", name="Sales")
        self.archived_workspace = Workspace(tenant_id="acme", name="Old", status=RecordStatus.ARCHIVED)
        self.db.add_all([self.workspace, self.other_workspace, self.archived_workspace])
        self.db.flush()

        self.project = Project(tenant_id="acme", workspace_id=self.workspace.id, name="Warehouse")
        self.loose_project = Project(tenant_id="acme", workspace_id=None, name="Ad hoc")
        self.archived_project = Project(tenant_id="acme", name="Legacy", status=RecordStatus.ARCHIVED)
        self.foreign_project = Project(tenant_id="globex", name="Globex project")
        self.admin = User(tenant_id="acme", email="alice@acme.local", name="Alice", role=UserRole.COMPANY_ADMIN)
        self.bob = User(tenant_id="acme", email="bob@acme.local", name="Bob", role=UserRole.EMPLOYEE)
        self.carol = User(tenant_id="acme", email="carol@acme.local", name="Carol", role=UserRole.EMPLOYEE)
        self.suspended = User(
            tenant_id="acme",
            email="sam@acme.local",
            name="Sam",
            role=UserRole.EMPLOYEE,
            status=UserStatus.SUSPENDED,
        )
        self.outsider = User(tenant_id="globex", email="gina@globex.local", name="Gina", role=UserRole.EMPLOYEE)
        self.db.add_all(
            [
                self.project,
                self.loose_project,
                self.archived_project,
                self.foreign_project,
                self.admin,
                self.bob,
                self.carol,
                self.suspended,
                self.outsider,
            ]
        )
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def _create(self, **overrides):  # type: ignore[no-untyped-def]
        params = {
            "tenant_id": "acme",
            "actor_id": self.bob.id,
            "actor_role": UserRole.EMPLOYEE,
            "user_id": self.bob.id,
            "project_id": self.project.id,
            "start_utc": datetime(2026, 2, 10, 20, 0, tzinfo=timezone.utc),
            "end_utc": datetime(2026, 2, 11, 3, 0, tzinfo=timezone.utc),
            "notes": "night shift",
            "now_utc": NOW_UTC,
        }
        params.update(overrides)
        return create_time_entry(self.db, **params)

    def _entry_count(self) -> int:
        return self.db.scalar(select(func.count(TimeEntry.id))) or 0

    def _split_count(self) -> int:
        return self.db.scalar(select(func.count(TimeEntrySplit.id))) or 0


class CreateTimeEntryTests(_TenantFixture):
    def test_overnight_entry_is_split_per_local_day(self) -> None:
        created = self._create()

        self.assertEqual(created.entry.status, EntryStatus.PENDING)
        self.assertEqual(created.entry.workspace_id, self.workspace.id)
        self.assertEqual(created.entry.created_by_id, self.bob.id)
        self.assertEqual(created.entry.total_hours, Decimal("7.00"))
        self.assertEqual(created.entry.evening_hours, Decimal("0.00"))
        self.assertEqual(created.entry.night_hours, Decimal("7.00"))

        self.assertEqual([split.local_date for split in created.splits], [date(2026, 2, 10), date(2026, 2, 11)])
        self.assertEqual([split.total_hours for split in created.splits], [Decimal("2.00"), Decimal("5.00")])
        for split in created.splits:
            self.assertEqual(split.status, EntryStatus.PENDING)
            self.assertEqual(split.notes, "night shift")
            self.assertEqual(split.time_entry_id, created.entry.id)
        self.assertEqual(self._split_count(), 2)

    def test_parent_totals_sum_rounded_split_figures(self) -> None:
        # 23:50-00:10 local: two 10-minute splits of 0.17 h each
        created = self._create(
            start_utc=datetime(2026, 2, 10, 21, 50, tzinfo=timezone.utc),
            end_utc=datetime(2026, 2, 10, 22, 10, tzinfo=timezone.utc),
        )

        self.assertEqual([split.total_hours for split in created.splits], [Decimal("0.17"), Decimal("0.17")])
        self.assertEqual(created.entry.total_hours, Decimal("0.34"))
        self.assertEqual(created.entry.night_hours, Decimal("0.34"))

    def test_active_policy_windows_are_used(self) -> None:
        self.db.add(
            ShiftPolicy(
                tenant_id="acme",
                evening_start="17:00",
                evening_end="23:00",
                night_start="23:00",
                night_end="07:00",
            )
        )
        self.db.commit()

        # 16:00-21:00 local
        created = self._create(
            start_utc=datetime(2026, 2, 10, 14, 0, tzinfo=timezone.utc),
            end_utc=datetime(2026, 2, 10, 19, 0, tzinfo=timezone.utc),
        )

        self.assertEqual(created.entry.evening_hours, Decimal("4.00"))
        self.assertEqual(created.entry.night_hours, Decimal("0.00"))

    def test_missing_policy_falls_back_to_default_windows(self) -> None:
        created = self._create(
            start_utc=datetime(2026, 2, 10, 14, 0, tzinfo=timezone.utc),
            end_utc=datetime(2026, 2, 10, 19, 0, tzinfo=timezone.utc),
        )

        self.assertEqual(created.entry.evening_hours, Decimal("3.00"))

    def test_admin_can_submit_for_employee(self) -> None:
        created = self._create(actor_id=self.admin.id, actor_role=UserRole.COMPANY_ADMIN, user_id=self.carol.id)

        self.assertEqual(created.entry.user_id, self.carol.id)
        self.assertEqual(created.entry.created_by_id, self.admin.id)

    def test_unknown_or_suspended_user_is_not_found(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self._create(user_id=9999)
        with self.assertRaises(UserNotFoundError):
            self._create(actor_id=self.admin.id, actor_role=UserRole.COMPANY_ADMIN, user_id=self.suspended.id)

    def test_user_from_another_tenant_is_cross_tenant(self) -> None:
        with self.assertRaises(CrossTenantError):
            self._create(actor_id=self.admin.id, actor_role=UserRole.COMPANY_ADMIN, user_id=self.outsider.id)

    def test_archived_or_foreign_project_is_not_found(self) -> None:
        with self.assertRaises(ProjectNotFoundError):
            self._create(project_id=self.archived_project.id)
        with self.assertRaises(ProjectNotFoundError):
            self._create(project_id=self.foreign_project.id)

    def test_project_is_checked_before_authorization(self) -> None:
        with self.assertRaises(ProjectNotFoundError):
            self._create(user_id=self.carol.id, project_id=self.archived_project.id)

    def test_employee_cannot_submit_for_someone_else(self) -> None:
        with self.assertRaises(ForbiddenError):
            self._create(user_id=self.carol.id)
        self.assertEqual(self._entry_count(), 0)

    def test_workspace_must_match_project_workspace(self) -> None:
        with self.assertRaises(WorkspaceMismatchError):
            self._create(workspace_id=self.other_workspace.id)

    def test_explicit_workspace_must_be_active(self) -> None:
        with self.assertRaises(WorkspaceNotFoundError):
            self._create(project_id=self.loose_project.id, workspace_id=self.archived_workspace.id)

    def test_project_without_workspace_takes_explicit_one(self) -> None:
        created = self._create(project_id=self.loose_project.id, workspace_id=self.other_workspace.id)

        self.assertEqual(created.entry.workspace_id, self.other_workspace.id)

    def test_reversed_interval_is_rejected(self) -> None:
        with self.assertRaises(InvalidIntervalError):
            self._create(
                start_utc=datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc),
                end_utc=datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc),
            )

    def test_future_segment_rejects_whole_entry(self) -> None:
        # Second split falls on 2026-02-13 local, one day after today
        with self.assertRaises(FutureDateNotAllowedError):
            self._create(
                start_utc=datetime(2026, 2, 12, 20, 0, tzinfo=timezone.utc),
                end_utc=datetime(2026, 2, 13, 2, 0, tzinfo=timezone.utc),
            )
        self.assertEqual(self._entry_count(), 0)
        self.assertEqual(self._split_count(), 0)

    def test_user_backdate_limit_applies(self) -> None:
        self.bob.backdate_limit_days = 1
        self.db.commit()

        with self.assertRaises(BackdateLimitExceededError):
            self._create()

    def test_failed_commit_persists_nothing(self) -> None:
        with patch.object(self.db, "commit", side_effect=RuntimeError("database unavailable")):
            with self.assertRaises(RuntimeError):
                self._create()

        self.assertEqual(self._entry_count(), 0)
        self.assertEqual(self._split_count(), 0)


class ListTimeEntrySplitsTests(_TenantFixture):
    def test_filters_by_user_status_and_dates(self) -> None:
        self._create()
        self._create(
            actor_id=self.admin.id,
            actor_role=UserRole.COMPANY_ADMIN,
            user_id=self.carol.id,
            start_utc=datetime(2026, 2, 11, 6, 0, tzinfo=timezone.utc),
            end_utc=datetime(2026, 2, 11, 14, 0, tzinfo=timezone.utc),
        )

        everything = list_time_entry_splits(self.db, tenant_id="acme")
        bobs = list_time_entry_splits(self.db, tenant_id="acme", user_id=self.bob.id)
        first_day = list_time_entry_splits(
            self.db,
            tenant_id="acme",
            start_date=date(2026, 2, 10),
            end_date=date(2026, 2, 10),
        )
        approved = list_time_entry_splits(self.db, tenant_id="acme", status=EntryStatus.APPROVED)
        foreign = list_time_entry_splits(self.db, tenant_id="globex")

        self.assertEqual(len(everything), 3)
        self.assertEqual(everything[-1].local_date, date(2026, 2, 10))
        self.assertEqual(len(bobs), 2)
        self.assertEqual(len(first_day), 1)
        self.assertEqual(approved, [])
        self.assertEqual(foreign, [])


class LocalStartIsFutureTests(unittest.TestCase):
    def test_compares_against_clock(self) -> None:
        self.assertTrue(local_start_is_future(datetime(2026, 2, 12, 10, 1, tzinfo=timezone.utc), now_utc=NOW_UTC))
        self.assertFalse(local_start_is_future(datetime(2026, 2, 12, 9, 59, tzinfo=timezone.utc), now_utc=NOW_UTC))


if __name__ == "__main__":
    unittest.main()
