#!/usr/bin/env python
from __future__ import annotations

import json
import os

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetrack.db import SessionLocal
from timetrack.models import Company, Project, User, UserRole, Workspace
from timetrack.security import hash_password
from timetrack.services.policies import get_active_policy, replace_active_policy
from timetrack.services.shift_calc import DEFAULT_SHIFT_WINDOWS

DEMO_TENANT_ID = "acme-corp"
DEMO_PASSWORD_ENV = "DEMO_PASSWORD"

DEMO_USERS = [
    ("super@timetrack.local", "Super Admin", UserRole.SUPER_ADMIN, None),
    ("alice@acme.local", "Alice Admin", UserRole.COMPANY_ADMIN, DEMO_TENANT_ID),
    ("bob@acme.local", "Bob Employee", UserRole.EMPLOYEE, DEMO_TENANT_ID),
]


def _get_or_create_user(
    db: Session,
    *,
    email: str,
    name: str,
    role: UserRole,
    tenant_id: str | None,
    password: str,
) -> tuple[User, bool]:
    user = db.scalar(select(User).where(User.email == email))
    if user is not None:
        return user, False
    user = User(
        email=email,
        name=name,
        role=role,
        tenant_id=tenant_id,
        password_hash=hash_password(password),
    )
    db.add(user)
    return user, True


def run() -> dict:
    password = os.environ.get(DEMO_PASSWORD_ENV, "demo-password")
    report: dict = {"tenant_id": DEMO_TENANT_ID, "created": []}

    with SessionLocal() as db:
        company = db.scalar(select(Company).where(Company.tenant_id == DEMO_TENANT_ID))
        if company is None:
            db.add(Company(tenant_id=DEMO_TENANT_ID, name="Acme Corp", timezone="Europe/Helsinki"))
            report["created"].append("company")

        workspace = db.scalar(select(Workspace).where(Workspace.tenant_id == DEMO_TENANT_ID))
        if workspace is None:
            workspace = Workspace(tenant_id=DEMO_TENANT_ID, name="Operations")
            db.add(workspace)
            db.flush()
            db.add(Project(tenant_id=DEMO_TENANT_ID, workspace_id=workspace.id, name="Warehouse", color="#0ea5e9"))
            report["created"].extend(["workspace", "project"])

        for email, name, role, tenant_id in DEMO_USERS:
            _, created = _get_or_create_user(
                db,
                email=email,
                name=name,
                role=role,
                tenant_id=tenant_id,
                password=password,
            )
            if created:
                report["created"].append(email)
        db.commit()

        if get_active_policy(db, DEMO_TENANT_ID) is None:
            replace_active_policy(db, tenant_id=DEMO_TENANT_ID, windows=DEFAULT_SHIFT_WINDOWS)
            report["created"].append("shift_policy")

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
