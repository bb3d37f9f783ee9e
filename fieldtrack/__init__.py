"""fieldtrack — client core for tasks, expenses and their photo attachments."""

__version__ = "0.1.0"
