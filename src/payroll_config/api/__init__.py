"""HTTP API for payroll configuration."""
