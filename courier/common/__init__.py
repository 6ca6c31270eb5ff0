"""Shared helpers used across Courier packages."""
