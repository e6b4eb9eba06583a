"""Contributor services: sale lifecycle, contributions and claims."""
