"""Reference adapters."""

from pkgtrust.adapters.base import ResolutionError, is_internal, parse_repo_url
from pkgtrust.adapters.npm import NpmAdapter
from pkgtrust.adapters.resolver import ReferenceResolver

__all__ = ["NpmAdapter", "ReferenceResolver", "ResolutionError", "is_internal", "parse_repo_url"]
