"""Capa de infraestructura: pool PostgreSQL, repositorios y servicios (backups)."""
