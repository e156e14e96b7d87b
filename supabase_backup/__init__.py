"""Backup and restore tooling for self-hosted Supabase databases."""

__version__ = "1.0.0"
