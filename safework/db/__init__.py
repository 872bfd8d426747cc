"""Persistence layer for SafeWork."""
