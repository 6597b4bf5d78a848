"""Service layer for business logic.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services hold the validation and write-path rules and raise the domain
exceptions in ``services.errors``. They never commit and know nothing about
HTTP status codes; routes translate errors with ``routes.utils.http_error``.
"""
