"""Bookstore vertical configuration.

Builds the BookstoreConfig from the patterns module once at import,
honouring BOOKSTORE_* environment overrides.
"""

from patterns.domain_config import BookstoreConfig

# Default configuration instance
config = BookstoreConfig.from_env()
