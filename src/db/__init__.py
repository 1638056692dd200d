"""
Database Module
-------------
Handles database connections and the ORM model for usage records.
Uses SQLAlchemy so the usage counter can live in PostgreSQL (or SQLite) instead of process memory.
"""
