"""Generated-table validation and drift history."""
