"""HTTP API for expense reconciliation."""
