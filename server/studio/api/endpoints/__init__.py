"""
API Endpoints Package

Available Endpoints:
- generation: /api/generate and /api/edit
- system: health check
- frontend: static UI with index.html fallback
"""
