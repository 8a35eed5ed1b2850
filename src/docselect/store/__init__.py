"""File-backed document repository."""

from docselect.store.loader import DocumentLoader, load_project_info, parse_front_matter

__all__ = ["DocumentLoader", "load_project_info", "parse_front_matter"]
