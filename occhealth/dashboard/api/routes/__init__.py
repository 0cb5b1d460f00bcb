"""Dashboard API routes."""
