"""focuslog: a goal-tagged focus timer with a durable session log."""

__version__ = "0.1.0"
