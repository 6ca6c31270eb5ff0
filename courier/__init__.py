"""Courier: asynchronous report generation with secure download delivery."""
