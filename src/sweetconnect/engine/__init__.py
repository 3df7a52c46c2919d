"""Orchestration: router, activities, account notifications and errors."""
