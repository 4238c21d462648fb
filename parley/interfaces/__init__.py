"""External interfaces for Parley."""
