"""
Domain layer - Business logic and domain models.

This layer contains:
- Value objects (immutable, self-validating)
- Domain entities (with lifecycle rules)
- Tagged results for store operations
- Unit of Work (transaction boundary)
"""
