"""Code shared between the studio backend and its callers."""
