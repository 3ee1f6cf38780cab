"""
Task Tracker backend package.

Layers, leaf first: models and errors, the Repository contract with its
in-memory and SQLite implementations, the TaskService that validates input,
and the FastAPI app in `main` that exposes it over HTTP.
"""
