"""Tests for bookscan.config: StructureConfig defaults, overrides, and validation."""

import pytest

from bookscan.config import ConfigValidationError, SequencePolicy, StructureConfig


class TestStructureConfig:
    def test_defaults(self):
        cfg = StructureConfig()
        assert cfg.cluster_tolerance == 7.0
        assert cfg.default_role_tolerance == 15.0
        assert cfg.page_width == 2480.0
        assert cfg.centering_tolerance == 100.0
        assert cfg.centered_line_width_factor == 0.9
        assert cfg.superscript_height_ratio == 0.7
        assert cfg.superscript_vertical_offset == 5.0
        assert cfg.sequence_policy is SequencePolicy.strict
        assert cfg.footnote_heading == "# FUSSNOTEN"

    def test_override(self):
        cfg = StructureConfig(cluster_tolerance=10.0, skip_start_marker=True)
        assert cfg.cluster_tolerance == 10.0
        assert cfg.skip_start_marker is True

    def test_policy_from_string(self):
        cfg = StructureConfig(sequence_policy="skip")
        assert cfg.sequence_policy is SequencePolicy.skip

    def test_end_markers_coerced_to_tuple(self):
        cfg = StructureConfig(paragraph_end_markers=[".", "!"])
        assert cfg.paragraph_end_markers == (".", "!")

    def test_vars_round_trip(self):
        cfg = StructureConfig(centering_tolerance=50.0, sequence_policy="skip")
        cfg2 = StructureConfig(**vars(cfg))
        assert vars(cfg) == vars(cfg2)

    def test_format_reference(self):
        assert StructureConfig().format_reference("3") == "[3]"
        assert StructureConfig(footnote_marker_format="^{ref}").format_reference("**") == "^**"


class TestConfigValidation:
    """Validate __post_init__ range guards."""

    def test_cluster_tolerance_zero_rejected(self):
        with pytest.raises(ConfigValidationError, match="cluster_tolerance"):
            StructureConfig(cluster_tolerance=0)

    def test_page_width_negative_rejected(self):
        with pytest.raises(ConfigValidationError, match="page_width"):
            StructureConfig(page_width=-1)

    def test_centering_tolerance_zero_allowed(self):
        assert StructureConfig(centering_tolerance=0).centering_tolerance == 0

    def test_centering_tolerance_negative_rejected(self):
        with pytest.raises(ConfigValidationError, match="centering_tolerance"):
            StructureConfig(centering_tolerance=-5)

    @pytest.mark.parametrize("value", [0.0, 1.0, 1.5])
    def test_height_ratio_must_be_open_unit(self, value):
        with pytest.raises(ConfigValidationError, match="superscript_height_ratio"):
            StructureConfig(superscript_height_ratio=value)

    def test_width_factor_out_of_range(self):
        with pytest.raises(ConfigValidationError, match="centered_line_width_factor"):
            StructureConfig(centered_line_width_factor=2.0)

    def test_empty_end_markers_rejected(self):
        with pytest.raises(ConfigValidationError, match="paragraph_end_markers"):
            StructureConfig(paragraph_end_markers=())

    def test_marker_format_needs_placeholder(self):
        with pytest.raises(ConfigValidationError, match="footnote_marker_format"):
            StructureConfig(footnote_marker_format="[n]")

    def test_unknown_policy_rejected(self):
        with pytest.raises(ConfigValidationError, match="sequence_policy"):
            StructureConfig(sequence_policy="lenient")
