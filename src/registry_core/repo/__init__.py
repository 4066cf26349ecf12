"""Repositories over the registry tables. Callers own the session and transaction."""
