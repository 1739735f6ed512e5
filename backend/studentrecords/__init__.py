"""Application package for the student records backend.

This package exposes the service, repository and model modules used by
the FastAPI application: authentication, unit registration, program
audits and administrative record maintenance. Individual modules contain
the concrete implementations and documentation.
"""
