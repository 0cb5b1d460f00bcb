"""Dashboard API application, dependencies and middleware."""
