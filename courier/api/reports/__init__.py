"""Report submission, job status, and artifact download resources."""
