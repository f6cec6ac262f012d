"""Teacher directory: search people by name and find where they sit."""

__version__ = "0.1.0"
