"""
Family Tree API package.

Modules:
- config: environment-driven settings and logging setup
- db: PostgreSQL connection pool + query helpers
- repositories: SQL for users and family members
- auth_utils: password hashing, JWT issuance and the bearer-token gate
- services: registration/login and ownership-scoped member CRUD
- errors: error taxonomy and JSON error rendering
- schemas: Pydantic models for the REST API
"""
