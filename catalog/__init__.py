"""
Catalog package: the domain core of the book catalog.

This package contains:
- Domain models (roles, members, books, authenticated principals)
- MongoDB stores for roles, members and books
- Identity resolution and principal adaptation
- Member registration and login
- The ownership-checking book service
- Startup data seeding
"""

__version__ = "1.0.0"
