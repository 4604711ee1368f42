"""Match resolution: candidate retrieval, primary selection and synonym redirection."""

from taxonalign.resolution.config import MatchPreferenceConfig
from taxonalign.resolution.resolver import MatchResolver, select_primary

__all__ = ["MatchPreferenceConfig", "MatchResolver", "select_primary"]
