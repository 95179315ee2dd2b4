"""formaudit - structural and version auditing for formula definitions."""

__version__ = "0.1.0"
