"""Document store: references, upload, replacement and detail."""
