"""cleanslim - measure and reclaim disk space held by cache directories."""

__version__ = "0.1.0"
