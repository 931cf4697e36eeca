"""
LegalFlow backend package.

This package provides a FastAPI application for law-office management
(clients, cases, counterparts, agenda, documents, reports and a recycle bin)
with database and storage abstractions so it can run against Postgres/S3 or
fully in memory for development and tests.
"""
