"""Faber -- scaffold projects from boilerplates and apply data-driven file actions.

A boilerplate ships a ``faberconfig.py`` that declares an ordered list of
file actions with the :class:`~faber.engine.Faber` builder.  ``faber run``
resolves those actions against the project's data and applies (or, with
``--dry``, simulates) them one after another, reporting every outcome.
"""

from faber.config import FaberConfig
from faber.engine import (
    ActionRunner,
    ActionStatus,
    ExecutionMode,
    Faber,
    RunReport,
    load_config_script,
    print_report,
)

__version__ = "0.1.0"

__all__ = [
    "FaberConfig",
    "Faber",
    "ActionRunner",
    "ActionStatus",
    "ExecutionMode",
    "RunReport",
    "load_config_script",
    "print_report",
]
