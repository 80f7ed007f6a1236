"""Service exports.

``agent`` is imported on demand; it depends on ``app.core.db``, which in turn
uses the statement builders defined here.
"""

from . import errors, identifiers, sql, tools

__all__ = ["errors", "identifiers", "sql", "tools"]
