"""
API package for the Image Studio backend.

- endpoints: route modules (generation, system, frontend)
- errors: exception -> HTTP status mapping at the route boundary
"""
