"""Build-time scoping of pod style modules and the templates that use them."""

from podstyles.core.naming import NamingScheme, ScopedNameGenerator, scoped_name

__version__ = "0.1.0"

__all__ = ["NamingScheme", "ScopedNameGenerator", "scoped_name", "__version__"]
