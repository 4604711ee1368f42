"""Configuration for primary-match selection.

This module provides a small configuration class controlling how the
resolver chooses one primary record among several candidates.
"""

from typing import Any, Dict

from taxonalign import ranks
from taxonalign.constants import INFRA_RANK_MARKERS
from taxonalign.types.data_classes import CandidateGroup


class MatchPreferenceConfig:
    """Configuration for the primary-match tie-break.

    Attributes:
        group_order: Status groups tried in order before falling back to all candidates
        infra_rank_markers: Substrings that make a rank count as below species
    """

    def __init__(self):
        self.group_order = (CandidateGroup.ACCEPTED, CandidateGroup.SYNONYM)
        self.infra_rank_markers = INFRA_RANK_MARKERS

    def update(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from a dictionary.

        Args:
            config_dict: Dictionary of configuration parameters to update

        Raises:
            ValueError: If a key is not a known configuration parameter
        """
        for key, value in config_dict.items():
            if not hasattr(self, key):
                raise ValueError(f"Unknown configuration parameter: {key}")
            if key == "group_order":
                value = tuple(v if isinstance(v, CandidateGroup) else CandidateGroup(v) for v in value)
            elif key == "infra_rank_markers":
                value = tuple(str(v).lower() for v in value)
            setattr(self, key, value)

    def looks_infra(self, rank) -> bool:
        """Return whether a rank text names a rank below species."""
        return ranks.is_infra_rank(rank, self.infra_rank_markers)

    def __repr__(self) -> str:
        groups = ", ".join(g.value for g in self.group_order)
        return f"MatchPreferenceConfig(group_order=[{groups}], infra_rank_markers={list(self.infra_rank_markers)})"
