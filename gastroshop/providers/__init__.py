"""Внешние интеграции."""
