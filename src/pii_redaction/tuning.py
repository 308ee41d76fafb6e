"""Named thresholds for the reconciliation and geometry heuristics.

Every numeric constant the filters, mapper and signature heuristics rely on
lives here so each one can be tuned (and tested) in isolation. Distances and
paddings are expressed in page-native units (inches for PDF input); they are
converted to points only after the box has been computed.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Thresholds:
    """Tunable heuristic thresholds. Defaults reproduce production behaviour."""

    # Whitelist / dynamic address exclusion
    address_similarity: float = 0.85
    """Whole-string Levenshtein similarity that excludes an entity."""
    token_similarity: float = 0.85
    """Per-token similarity counted as a token match."""
    token_match_ratio: float = 0.6
    """Fraction of exclude-address tokens that must match."""
    min_token_matches: int = 2
    component_similarity: float = 0.75
    """Street/city similarity in the component comparison."""
    min_component_matches: int = 2
    static_address_ratio: float = 0.5
    """Fraction of whitelisted-address tokens that must match."""
    min_token_length: int = 3
    """Tokens shorter than this are ignored in token comparisons."""

    # Energy-scale noise suppression
    energy_scale_max: int = 300
    energy_scale_steps: tuple = (25, 50)
    energy_scale_min_tokens: int = 3

    # Coordinate mapping
    word_padding: float = 0.02
    """Padding added around each redacted word (~1.5 pt at 72 DPI)."""

    # Signature detection
    signature_context_radius: int = 150
    signature_padding: float = 0.05
    label_max_dy: float = 2.0
    label_max_dx: float = 4.0
    signature_bottom_ratio: float = 0.75
    """Handwriting whose centre lies below this page fraction is 'bottom'."""
    signature_bottom_min_length: int = 5
    signature_min_length_near_label: int = 2
    signature_min_length: int = 3

    # Signature fallback pass
    fallback_label_min_ratio: float = 0.5
    fallback_max_dy: float = 1.0
    fallback_max_dx: float = 3.0
    fallback_padding: float = 0.1
    fallback_min_width_pt: float = 20.0
    fallback_min_height_pt: float = 10.0
    fallback_duplicate_distance_pt: float = 50.0


DEFAULT_THRESHOLDS = Thresholds()
