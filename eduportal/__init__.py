"""
============================================================================
FILE: __init__.py
LOCATION: eduportal/__init__.py
============================================================================

PURPOSE:
    Backend for a role-scoped educational content portal:
    Department -> Subject -> Chapter -> Content, managed by a master
    admin, department admins and teachers.

USAGE:
    uvicorn eduportal.main:app
============================================================================
"""

__version__ = "1.0.0"
