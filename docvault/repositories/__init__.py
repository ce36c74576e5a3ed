"""Repositories package - data access layer for DocVault entities."""

from docvault.repositories.access import AccessRepository
from docvault.repositories.files import FileRepository

__all__ = ["AccessRepository", "FileRepository"]
