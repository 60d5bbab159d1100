"""Catalog-and-collection backend for container images."""
