"""
HTTP API: routes, request/response models, dependencies and middleware.
"""
