"""Shared utilities package for the completion form engine.

This package contains code shared by every form session, whatever backend the
form is persisted to. It includes:

- Form schemas (schemas.py) - Pydantic models for templates, records and wire payloads
- Database models (models.py) - SQLAlchemy model for the local form record cache
- Enums (enums.py) - Field types, form status and sync status values
- Validation utilities (validation.py) - Answer checks and help text sanitization
- Utility functions (utils.py) - Photo orientation normalization and hashing
"""
