"""Schema versioning for the Scriptorium database.

The applied schema version is the highest row in ``_schema_version``. Each
``NNN_*.py`` module in this package moves it one step forward. A step whose
tables already exist (a database built directly with ``create_tables``) is
recorded without running its upgrade.
"""

from __future__ import annotations

import importlib
import pkgutil
from types import ModuleType

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine

from scriptorium.database import schema_version
from scriptorium.logging import get_logger
from scriptorium.models import utcnow

log = get_logger("migrations")


def load_steps() -> list[ModuleType]:
    """Import every schema step in this package, ordered by VERSION."""
    steps = [
        importlib.import_module(f"{__package__}.{info.name}")
        for info in pkgutil.iter_modules(importlib.import_module(__package__).__path__)
        if info.name[:3].isdigit()
    ]
    return sorted(steps, key=lambda step: step.VERSION)


def get_current_version(engine: Engine) -> int:
    """Return the applied schema version, 0 for an empty database."""
    if not inspect(engine).has_table(schema_version.name):
        return 0

    with engine.connect() as conn:
        return conn.execute(select(func.max(schema_version.c.version))).scalar() or 0


def pending_steps(engine: Engine) -> list[ModuleType]:
    """Schema steps newer than the database."""
    current = get_current_version(engine)
    return [step for step in load_steps() if step.VERSION > current]


def migrate(engine: Engine, target_version: int | None = None) -> int:
    """Bring the schema forward, up to target_version when given.

    Args:
        engine: SQLAlchemy engine.
        target_version: Highest version to apply; all steps when None.

    Returns:
        The schema version after migrating.
    """
    schema_version.create(engine, checkfirst=True)

    for step in pending_steps(engine):
        if target_version is not None and step.VERSION > target_version:
            break

        if step.check(engine):
            log.info("schema_step_already_present", version=step.VERSION)
        else:
            log.info("schema_step_applying", version=step.VERSION, description=step.DESCRIPTION)
            try:
                step.upgrade(engine)
            except Exception as e:
                log.error("schema_step_failed", version=step.VERSION, error=str(e))
                raise

        with engine.begin() as conn:
            conn.execute(
                schema_version.insert().values(
                    version=step.VERSION,
                    applied_at=utcnow(),
                    description=step.DESCRIPTION,
                )
            )

    version = get_current_version(engine)
    log.info("schema_version", version=version)
    return version
