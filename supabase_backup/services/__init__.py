"""Backup, restore and verification services."""
