"""Room chat relay backend."""
