"""Request schemas package."""
