"""Analysis – statistics over collected execution records."""
