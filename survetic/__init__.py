"""Survetic survey-building API."""
