"""Service layer: workflow engine, reconciliation, visibility, history, notifications, scheduling."""
