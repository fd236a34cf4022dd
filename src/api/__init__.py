"""Controller-facing facade."""
