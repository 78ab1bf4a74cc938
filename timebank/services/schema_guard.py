from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from timebank.models import (
    Employee,
    EmployeeShift,
    Holiday,
    Justification,
    JustificationStatus,
    ShiftRule,
    TimeEvent,
    TimeEventType,
)

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"

# Tables the report engine and the manager endpoints read.
GUARDED_MODELS = (Employee, ShiftRule, EmployeeShift, TimeEvent, Holiday, Justification)
GUARDED_ENUMS: dict[str, type[enum.Enum]] = {
    "time_event_type": TimeEventType,
    "justification_status": JustificationStatus,
}


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    revision: str | None = None
    expected_revision: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "revision": self.revision,
            "expected_revision": self.expected_revision,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
        }


def expected_columns() -> dict[str, set[str]]:
    return {model.__table__.name: {column.name for column in model.__table__.columns} for model in GUARDED_MODELS}


def migration_head() -> str | None:
    return ScriptDirectory(str(MIGRATIONS_DIR)).get_current_head()


def _column_issues(inspector: Any) -> list[str]:
    issues: list[str] = []
    for table_name, required in expected_columns().items():
        try:
            present = {str(column.get("name")) for column in inspector.get_columns(table_name)}
        except SQLAlchemyError as exc:
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue
        missing = sorted(required - present)
        if missing:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing)}")
    return issues


def _enum_findings(inspector: Any) -> tuple[list[str], list[str]]:
    try:
        labels_by_name = {
            str(item.get("name")): set(item.get("labels") or []) for item in inspector.get_enums() or []
        }
    except (SQLAlchemyError, NotImplementedError) as exc:
        return [], [f"ENUM_INSPECTION_FAILED:{exc.__class__.__name__}"]

    issues: list[str] = []
    warnings: list[str] = []
    for enum_name, enum_cls in GUARDED_ENUMS.items():
        if enum_name not in labels_by_name:
            warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
            continue
        # An unknown label would fail to load events of that type.
        missing = sorted({member.value for member in enum_cls} - labels_by_name[enum_name])
        if missing:
            issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing)}")
    return issues, warnings


def _database_revision(engine: Engine) -> tuple[str | None, list[str]]:
    try:
        with engine.connect() as connection:
            row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
    except SQLAlchemyError as exc:
        return None, [f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}"]
    revision = str(row).strip() if row is not None else ""
    if not revision:
        return None, ["ALEMBIC_VERSION_EMPTY"]
    return revision, []


def verify_runtime_schema(engine: Engine, *, expected_revision: str | None = None) -> SchemaGuardResult:
    """Check that the database can serve reports before taking traffic.

    Missing columns, missing enum labels and an unstamped database are
    issues. A revision other than the migration head is only a warning:
    the column checks already catch a schema that is really behind.
    """
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)
    if expected_revision is None:
        expected_revision = migration_head()

    issues = _column_issues(inspector)
    enum_issues, warnings = _enum_findings(inspector)
    issues.extend(enum_issues)

    revision, revision_issues = _database_revision(engine)
    issues.extend(revision_issues)
    if revision is not None and expected_revision is not None and revision != expected_revision:
        warnings.append(f"ALEMBIC_REVISION_MISMATCH:{revision}:{expected_revision}")

    return SchemaGuardResult(
        ok=not issues,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
        revision=revision,
        expected_revision=expected_revision,
    )
