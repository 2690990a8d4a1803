"""Integration tests for the registry API.

Exercises the FastAPI application in-process over httpx's ASGI transport:

- Endpoint request/response shapes
- Error taxonomy to HTTP status mapping
- End-to-end election flow
"""
