"""
Database Models

This package defines the persistent data structures for the tracker using
SQLAlchemy ORM.

Key Models:
- base.py: Declarative base with common column type definitions
- credentials.py: Issued-credential records and their read-side view
- health.py: In-process health gauge backing the readiness probe

Credential records are append-only. A record is written once by the exchange
pipeline after a fully validated long-lived token has been obtained and is
never updated or deleted afterwards.
"""
