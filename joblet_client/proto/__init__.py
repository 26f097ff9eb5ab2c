"""Protocol definitions for the Joblet services."""
