"""FastAPI REST API: todo items, samples and the system routes."""
