"""
Application Layer

FastAPI app factory, routes, dependencies and middleware.
"""
