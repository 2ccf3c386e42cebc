"""
Tests for over-limit at-risk pattern scoring, gating and risk levels.
"""
import pytest

from claimsops.analytics.at_risk import (
    at_risk_claims,
    claims_by_level,
    claims_by_state,
    risk_level_for,
    score_claim,
    summarize_at_risk,
)
from claimsops.config import AtRiskWeights
from claimsops.data.schemas import RiskLevel

from conftest import exposure_row


def quiet_row(**overrides):
    """BI row in a 25,000-limit state that matches no pattern."""
    row = exposure_row(**{
        "Accident Location State": "OHIO",
        "Open Reserves": "$1,000",
        "Overall CP1 Flag": "No",
        "TRIGGER TOTAL": "0",
        "Open/Closed Days": "45",
        "High": "0",
    })
    row.update(overrides)
    return row


def fatal_row(**overrides):
    """Quiet row plus a fatality: exactly 40 points, enough to be kept on its own."""
    return quiet_row(FATALITY="Yes", **overrides)


class TestPatterns:

    @pytest.mark.parametrize("overrides, pattern, points", [
        ({"Accident Location State": "NEVADA"}, "HIGH_RISK_STATE", 30),
        ({"Accident Location State": "Georgia"}, "HIGH_RISK_STATE", 20),
        ({"Accident Location State": "COLORADO"}, "HIGH_RISK_STATE", 10),
        ({"Open Reserves": "$20,000"}, "RESERVES_EXCEED_80_PCT", 25),
        ({"In Litigation Indicator": "In Litigation"}, "IN_LITIGATION", 20),
        ({"Overall CP1 Flag": "Yes"}, "CP1_FLAG", 15),
        ({"Open/Closed Days": "365"}, "AGE_365_PLUS", 15),
        ({"Open/Closed Days": "0", "Age": "365+ Days"}, "AGE_365_PLUS", 15),
        ({"SURGERY": "Yes"}, "SURGERY_INDICATOR", 20),
        ({"Injury Incident - Hospitalization and Hospitalized": "Yes"}, "HOSPITALIZATION", 15),
        ({"TRIGGER TOTAL": "3"}, "HIGH_TRIGGER_COUNT", 15),
        ({"High": "$37,501"}, "HIGH_EVAL_EXCEEDS_LIMIT", 20),
    ])
    def test_single_pattern_points(self, overrides, pattern, points):
        c = score_claim(fatal_row(**overrides))
        assert c.pattern_matches == ("FATALITY", pattern) or c.pattern_matches == (pattern, "FATALITY")
        assert c.risk_score == 40 + points

    @pytest.mark.parametrize("overrides", [
        {"Open Reserves": "$19,999"},
        {"Open/Closed Days": "364"},
        {"TRIGGER TOTAL": "2"},
        {"High": "$37,500"},
        {"In Litigation Indicator": "No"},
    ])
    def test_just_below_threshold(self, overrides):
        c = score_claim(fatal_row(**overrides))
        assert c.pattern_matches == ("FATALITY",)
        assert c.risk_score == 40

    def test_reserves_over_limit_also_over_80_pct(self):
        c = score_claim(quiet_row(**{"Open Reserves": "$30,000"}))
        assert c.pattern_matches == ("RESERVES_EXCEED_80_PCT", "RESERVES_EXCEED_LIMIT")
        assert c.risk_score == 60
        assert c.reserve_to_limit_ratio == pytest.approx(1.2)

    def test_zero_reserves_never_match_ratio(self):
        row = exposure_row(**{"Accident Location State": "OHIO", "Open Reserves": "0"})
        c = score_claim(row)
        assert "RESERVES_EXCEED_80_PCT" not in c.pattern_matches

    def test_pilot_claim_factors(self):
        c = score_claim(exposure_row())
        assert c.risk_score == 85
        assert c.risk_level is RiskLevel.CRITICAL
        assert c.policy_limit == 30000.0
        assert c.trigger_factors == (
            "High-risk state: TEXAS",
            "Reserves at 90% of limit",
            "CP1 flagged",
            "4 aggravating factors",
        )

    def test_factor_text(self):
        c = score_claim(fatal_row(**{"High": "$40,000", "Open/Closed Days": "400"}))
        assert "High eval $40,000 exceeds limit" in c.trigger_factors
        assert "400 days old" in c.trigger_factors

    def test_custom_weights(self):
        weights = AtRiskWeights(fatality=1, cp1_flag=1)
        c = score_claim(fatal_row(**{"Overall CP1 Flag": "Yes"}), weights)
        assert c.risk_score == 2


class TestGate:

    def test_non_bi_excluded(self):
        assert score_claim(exposure_row(Coverage="PD")) is None

    def test_one_weak_pattern_dropped(self):
        assert score_claim(quiet_row(**{"Overall CP1 Flag": "Yes"})) is None

    def test_two_weak_patterns_kept(self):
        c = score_claim(quiet_row(**{"Overall CP1 Flag": "Yes", "HOSPITALIZATION": "Yes"}))
        assert c.risk_score == 30
        assert c.risk_level is RiskLevel.MODERATE

    def test_one_strong_pattern_kept(self):
        c = score_claim(fatal_row())
        assert c.risk_score == 40
        assert c.risk_level is RiskLevel.MODERATE

    def test_no_pattern_dropped(self):
        assert score_claim(quiet_row()) is None


class TestLevels:

    @pytest.mark.parametrize("score, level", [
        (0, RiskLevel.MODERATE),
        (49, RiskLevel.MODERATE),
        (50, RiskLevel.HIGH),
        (79, RiskLevel.HIGH),
        (80, RiskLevel.CRITICAL),
        (200, RiskLevel.CRITICAL),
    ])
    def test_thresholds(self, score, level):
        assert risk_level_for(score) is level

    def test_scored_boundaries(self):
        assert score_claim(fatal_row(**{"Accident Location State": "COLORADO"})).risk_level is RiskLevel.HIGH
        at_80 = score_claim(fatal_row(**{"In Litigation Indicator": "Litigation", "SURGERY": "Yes"}))
        assert at_80.risk_score == 80
        assert at_80.risk_level is RiskLevel.CRITICAL


class TestSummary:

    @pytest.fixture
    def claims(self):
        rows = [
            exposure_row(**{"Claim#": "tx"}),
            fatal_row(**{"Claim#": "oh"}),
            exposure_row(**{"Claim#": "nv", "Accident Location State": "NEVADA", "Open Reserves": "40000",
                            "Overall CP1 Flag": "No", "TRIGGER TOTAL": "0"}),
            exposure_row(**{"Claim#": "pd", "Coverage": "PD"}),
        ]
        return at_risk_claims(rows)

    def test_ranked_by_score(self, claims):
        assert [(c.claim_number, c.risk_score) for c in claims] == [("nv", 90), ("tx", 85), ("oh", 40)]

    def test_summary(self, claims):
        s = summarize_at_risk(claims)
        assert s.total_at_risk == 3
        assert (s.critical_count, s.high_count, s.moderate_count) == (2, 0, 1)
        assert s.total_exposure == 68000.0
        assert s.potential_over_limit == 15000.0
        assert s.avg_risk_score == pytest.approx(215 / 3)
        assert [st.state for st in s.by_state] == ["NEVADA", "TEXAS", "OHIO"]
        assert s.by_state[0].avg_risk_score == 90.0
        assert [(p.pattern, p.count) for p in s.by_pattern[:2]] == [
            ("HIGH_RISK_STATE", 2), ("RESERVES_EXCEED_80_PCT", 2),
        ]
        assert s.by_pattern[0].description

    def test_filters(self, claims):
        assert [c.claim_number for c in claims_by_level(claims, RiskLevel.CRITICAL)] == ["nv", "tx"]
        assert [c.claim_number for c in claims_by_state(claims, "ohio")] == ["oh"]

    def test_empty(self):
        s = summarize_at_risk([])
        assert s.total_at_risk == 0
        assert s.avg_risk_score == 0.0
        assert s.by_pattern == []
