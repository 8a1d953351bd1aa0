"""Application package for the StudyFocus group-study backend.

This package exposes the search engine, service, repository and model
modules used by the FastAPI application. Individual modules contain the
concrete implementations and documentation.
"""
