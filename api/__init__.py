"""
FastAPI web application for the book catalog.

This module provides the HTML interface for:
- Member registration and session-based login
- Browsing and searching the book catalog
- Registering, editing and deleting owned books
"""
