"""
Core package for the Image Studio backend.

This package contains:
- config: Application settings and configuration
- errors: Failure taxonomy shared by server, client and session

Import Strategy:
- from studio.core.config import settings
- from studio.core.errors import GenerationFailed
"""
