"""storalyzer - scan a drive once, answer disk usage questions from the cached pass."""

__version__ = "0.1.0"
