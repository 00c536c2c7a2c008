"""dbjob - periodic tasks bound to a shared database connection."""

__version__ = "0.1.0"
