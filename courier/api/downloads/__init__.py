"""Public redirect resource for download tokens."""
