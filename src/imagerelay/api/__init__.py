"""Image Relay - FastAPI REST API layer.

This package contains the FastAPI application, the Pydantic request models,
request validation, and prompt synthesis.

Modules
-------
main
    Application factory, route handlers, error handlers and the ``main()``
    CLI entry point.
models
    Pydantic models for the four request bodies.
validation
    Syntactic checks (required fields, scale values, base64).
prompt_builder
    Per-endpoint prompt synthesis.
middleware
    Request body size ceiling.
"""
