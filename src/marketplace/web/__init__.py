"""Marketplace Web - FastAPI application."""
