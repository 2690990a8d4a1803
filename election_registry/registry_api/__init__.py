"""FastAPI service exposing the election registry over HTTP."""
