class AllocationError(Exception):
    """Raised when a counter store cannot produce the next sequence value."""
