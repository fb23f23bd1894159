"""Forward-only schema steps for the Scriptorium database.

Each step is a module named ``NNN_description.py`` defining ``VERSION``,
``DESCRIPTION``, ``upgrade(engine)`` and ``check(engine) -> bool``, where
``check`` reports whether the step's changes are already in place.
"""

from scriptorium.migrations.runner import get_current_version, migrate, pending_steps

__all__ = ["get_current_version", "migrate", "pending_steps"]
