"""Request-level CRUD entry points, envelopes and error handlers."""
