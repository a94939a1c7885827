"""Framework-independent domain rules."""
