"""Report renderers."""

from openreferral_validator.reporters.console import ConsoleReporter

__all__ = ["ConsoleReporter"]
