"""Packaged resources for sitefactory (validation schema, template skeleton)."""
