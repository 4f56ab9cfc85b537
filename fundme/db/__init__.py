"""Database layer: ORM models, sessions and schema checks."""
