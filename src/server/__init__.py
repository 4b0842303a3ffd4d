"""Webmention Receiver Server Package.

This package provides the Flask application that exposes the W3C
Webmention receiving endpoint, plus the Gunicorn settings used to serve it.

Key Components:
    create_app: Application factory taking the mention queue and config

Endpoints:
    POST /webmention: Accept a webmention (source, target) for verification
    GET /webmention: Endpoint description
    GET /health: Health check endpoint for monitoring

Usage:
    Start the server:
        $ mentiond

    Test with curl:
        $ curl -X POST http://localhost:5000/webmention \
               -d source=https://a.example/post \
               -d target=https://b.example/article
"""
from .app import create_app

__all__ = ["create_app"]
