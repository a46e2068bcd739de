"""HTTP API exposing balance, allowance and approval routes."""
