"""
Tests for thunder cloud thresholds and classifications.
"""

import pytest

from thundercloud.core.thunder_thresholds import ThunderThresholds
from thundercloud.models import RiskLevel


def test_cape_bands():
    """Test CAPE scoring, inclusive at each lower bound."""
    assert ThunderThresholds.score_cape(3000) == 1.0
    assert ThunderThresholds.score_cape(2500) == 1.0
    assert ThunderThresholds.score_cape(2499) == 0.8
    assert ThunderThresholds.score_cape(1000) == 0.8
    assert ThunderThresholds.score_cape(500) == 0.6
    assert ThunderThresholds.score_cape(100) == 0.3
    assert ThunderThresholds.score_cape(99.9) == 0.0
    assert ThunderThresholds.score_cape(0) == 0.0


def test_lifted_index_bands():
    """Test lifted index scoring, inclusive at each upper bound."""
    assert ThunderThresholds.score_lifted_index(-8) == 1.0
    assert ThunderThresholds.score_lifted_index(-6) == 1.0
    assert ThunderThresholds.score_lifted_index(-4.2) == 0.8
    assert ThunderThresholds.score_lifted_index(-3) == 0.8
    assert ThunderThresholds.score_lifted_index(0) == 0.6
    assert ThunderThresholds.score_lifted_index(3) == 0.4
    assert ThunderThresholds.score_lifted_index(6) == 0.2
    assert ThunderThresholds.score_lifted_index(6.1) == 0.0


def test_convective_inhibition_bands():
    assert ThunderThresholds.score_convective_inhibition(0) == 0.3
    assert ThunderThresholds.score_convective_inhibition(10) == 0.3
    assert ThunderThresholds.score_convective_inhibition(10.1) == 0.1
    assert ThunderThresholds.score_convective_inhibition(50) == 0.1
    assert ThunderThresholds.score_convective_inhibition(51) == 0.0


def test_convective_inhibition_sign_convention():
    """Negative energies score by magnitude."""
    assert ThunderThresholds.score_convective_inhibition(-8.3) == 0.3
    assert ThunderThresholds.score_convective_inhibition(-30) == 0.1
    assert ThunderThresholds.score_convective_inhibition(-120) == 0.0


def test_temperature_bands():
    assert ThunderThresholds.score_temperature(30) == 1.0
    assert ThunderThresholds.score_temperature(28.5) == 0.8
    assert ThunderThresholds.score_temperature(20) == 0.6
    assert ThunderThresholds.score_temperature(15) == 0.4
    assert ThunderThresholds.score_temperature(14.9) == 0.0


def test_cloud_cover_bands():
    assert ThunderThresholds.score_cloud_cover(80) == 1.0
    assert ThunderThresholds.score_cloud_cover(60) == 0.8
    assert ThunderThresholds.score_cloud_cover(40) == 0.6
    assert ThunderThresholds.score_cloud_cover(20) == 0.3
    assert ThunderThresholds.score_cloud_cover(19) == 0.0


def test_weights_sum_to_one():
    assert ThunderThresholds.weight_sum() == pytest.approx(1.0)


def test_risk_levels():
    assert ThunderThresholds.classify_risk_level(0.735) == RiskLevel.HIGH
    assert ThunderThresholds.classify_risk_level(0.5) == RiskLevel.HIGH
    assert ThunderThresholds.classify_risk_level(0.49) == RiskLevel.MEDIUM
    assert ThunderThresholds.classify_risk_level(0.3) == RiskLevel.MEDIUM
    assert ThunderThresholds.classify_risk_level(0.15) == RiskLevel.LOW
    assert ThunderThresholds.classify_risk_level(0.1) == RiskLevel.NONE


def test_likely_threshold():
    assert ThunderThresholds.is_likely(0.5) is True
    assert ThunderThresholds.is_likely(0.4999) is False
