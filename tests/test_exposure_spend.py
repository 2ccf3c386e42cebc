"""
Tests for the exposure/inventory and spend aggregation engines.
"""
import pytest

from claimsops.analytics.exposure import exposure_records, summarize_exposure
from claimsops.analytics.spend import check_records, summarize_spend

from conftest import check_row, exposure_row


class TestExposure:

    def test_empty_source(self):
        s = summarize_exposure([])
        assert s.total_claims == 0
        assert list(s.by_age) == ["365+ Days", "181-365 Days", "61-180 Days", "Under 60 Days"]
        assert all(v.count == 0 for v in s.by_age.values())
        assert s.cp1_rate == 0.0

    def test_inventory_totals_and_bands(self):
        rows = [
            exposure_row(**{"Open/Closed Days": "30", "Open Reserves": "$1,000"}),
            exposure_row(**{"Claim#": "2", "Open/Closed Days": "400", "Open Reserves": "$2,000",
                            "Type Group": "LIT", "Low": "500", "High": "900"}),
            exposure_row(**{"Claim#": "3", "Open/Closed Days": "", "Days": "200",
                            "Open Reserves": "(250.00)", "Type Group": " ", "Overall CP1 Flag": "No",
                            "Coverage": "PD"}),
        ]
        s = summarize_exposure(exposure_records(rows))

        assert s.total_claims == 3
        assert s.total_reserves == pytest.approx(2750.0)
        assert s.by_age["365+ Days"].count == 1
        assert s.by_age["365+ Days"].reserves == 2000.0
        assert s.by_age["181-365 Days"].count == 1
        assert s.by_age["61-180 Days"].count == 0
        assert s.by_age["Under 60 Days"].count == 1
        assert list(s.by_type_group) == ["ATR", "LIT", "(blank)"]
        assert s.lit_count == 1
        assert s.no_eval_count == 2
        assert s.no_eval_reserves == pytest.approx(750.0)
        assert s.cp1_count == 2
        assert s.cp1_rate == pytest.approx(200 / 3)
        assert s.bi_claims == 2
        assert s.bi_cp1_rate == 100.0

    def test_group_counts_partition_total(self):
        rows = [exposure_row(**{"Claim#": str(i), "Type Group": tg})
                for i, tg in enumerate(["A", "B", "", "A", "C", ""])]
        s = summarize_exposure(exposure_records(rows))
        assert sum(g.count for g in s.by_type_group.values()) == s.total_claims
        assert sum(g.count for g in s.by_age.values()) == s.total_claims

    def test_injury_alias_columns(self):
        rows = [exposure_row(**{"Injury Incident - Fatality": "Yes", "SURGERY": "Y"})]
        s = summarize_exposure(exposure_records(rows))
        assert s.fatality_count == 1
        assert s.surgery_count == 1
        assert s.hospitalization_count == 0


class TestSpend:

    def test_expense_vs_indemnity(self):
        rows = [
            check_row(**{"Line Item Category": "Expert Fees", "Net Amount": "500", "Gross Check": "500"}),
            check_row(**{"Line Item Category": "Indemnity Payment", "Net Amount": "1000", "Gross Check": "1000"}),
        ]
        s = summarize_spend(check_records(rows))
        assert s.expense_total == 500.0
        assert s.indemnity_total == 1000.0
        assert s.total_net == 1500.0
        assert s.check_count == 2

    def test_group_sums_partition_total(self):
        rows = [
            check_row(**{"Assigned Dept": dept, "Assigned Team": team, "Net Amount": amt, "Gross Check": amt})
            for dept, team, amt in [
                ("BI Unit", "Team A", "100"),
                ("Litigation", "Team B", "$2,000.50"),
                ("", "Team A", "(50)"),
                ("LIT", "", "300"),
            ]
        ]
        s = summarize_spend(check_records(rows))
        for groups in (s.by_dept, s.by_team, s.by_coverage, s.by_category, s.by_line_item):
            assert sum(g.net for g in groups.values()) == pytest.approx(s.total_net)
            assert sum(g.count for g in groups.values()) == s.check_count
        assert "(blank)" in s.by_dept
        assert s.total_net == pytest.approx(2350.5)

    def test_litigation_and_bi_slices(self):
        rows = [
            check_row(**{"Assigned Dept": "Litigation", "Net Amount": "700", "Assigned Team": "Lit 1"}),
            check_row(**{"Assigned Dept": "LIT", "Net Amount": "300", "Coverage": "PD",
                         "Line Item Category": "Legal Expenses"}),
            check_row(**{"Assigned Dept": "BI Unit", "Net Amount": "50"}),
        ]
        s = summarize_spend(check_records(rows))
        assert s.litigation.total_net == 1000.0
        assert s.litigation.check_count == 2
        assert s.litigation.expense_total == 300.0
        assert set(s.litigation.by_team) == {"Lit 1", "Team A"}
        assert s.bi.total_net == 750.0
        assert s.bi.check_count == 2

    def test_empty(self):
        s = summarize_spend([])
        assert s.total_net == 0.0
        assert s.by_dept == {}
        assert s.litigation.check_count == 0
