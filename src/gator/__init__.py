"""gator: a small multi-user RSS aggregator backed by SQLite."""
