"""Project-document linkage: checklist, progress and readiness."""
