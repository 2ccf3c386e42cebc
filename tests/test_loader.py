"""
Tests for fetching, delimited parsing, workbook grids and weekly window assembly.
"""
import asyncio
import datetime as dt

import httpx
import pytest

from claimsops.config import DEFAULT_RESERVE_LAYOUT
from claimsops.data.loader import (
    assemble_weekly_windows,
    decode_text,
    fetch_bytes,
    load_delimited,
    parse_delimited,
    parse_workbook,
    read_reserve_changes,
    select_layout,
)
from claimsops.errors import FetchError, SourceError

from conftest import reserve_grid, workbook_bytes


class TestParseDelimited:

    def test_quoted_fields_and_verbatim_headers(self):
        text = 'Claim#,Open Reserves,Open/Closed Days \n65-1,"$1,500.00",12\n'
        rows = parse_delimited(text)
        assert rows == [{"Claim#": "65-1", "Open Reserves": "$1,500.00", "Open/Closed Days ": "12"}]

    def test_cells_stay_strings(self):
        rows = parse_delimited("a,b\n007,NA\n")
        assert rows[0] == {"a": "007", "b": "NA"}

    def test_blank_rows_skipped_and_short_rows_padded(self):
        rows = parse_delimited("a,b,c\n1,2,3\n\n,,\n4\n")
        assert rows == [{"a": "1", "b": "2", "c": "3"}, {"a": "4", "b": "", "c": ""}]

    def test_long_rows_truncated(self):
        rows = parse_delimited("a,b\n1,2\n3,4,5,6\n")
        assert rows[1] == {"a": "3", "b": "4"}

    def test_escaped_quotes(self):
        rows = parse_delimited('name,note\nx,"said ""hi"", then left"\n')
        assert rows[0]["note"] == 'said "hi", then left'

    def test_duplicate_labels_keep_first_column(self, warnings_logged):
        rows = parse_delimited("Days,Days,X\n5,6,7\n", "dupes.csv")
        assert rows == [{"Days": "5", "X": "7"}]
        assert any("duplicate header" in m and "Days" in m for m in warnings_logged)

    def test_suffixed_label_that_is_not_a_duplicate(self, warnings_logged):
        rows = parse_delimited("Rate.5,Days\n1,2\n")
        assert rows == [{"Rate.5": "1", "Days": "2"}]
        assert warnings_logged == []

    def test_unterminated_quote_keeps_earlier_rows(self, warnings_logged):
        rows = parse_delimited('a,b\nx,y\n"1,2\n3,4\n', "open-quote.csv")
        assert rows == [{"a": "x", "b": "y"}]
        assert any("unterminated quote at line 3" in m for m in warnings_logged)

    def test_quoted_multiline_field_is_not_unterminated(self):
        rows = parse_delimited('a,b\n"line one\nline two",2\n')
        assert rows == [{"a": "line one\nline two", "b": "2"}]

    def test_unterminated_quote_in_header_is_fetch_error(self):
        with pytest.raises(FetchError):
            parse_delimited('"a,b\n1,2\n', "bad-header.csv")

    def test_empty_text_is_fetch_error(self):
        with pytest.raises(FetchError):
            parse_delimited("", "empty.csv")

    def test_decode_strips_bom(self):
        assert decode_text("﻿a,b\n".encode("utf-8")) == "a,b\n"

    def test_decode_rejects_binary(self):
        with pytest.raises(FetchError):
            decode_text(b"\xff\xfe\xfa", "bad.csv")


class TestFetch:

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(FetchError) as info:
            asyncio.run(fetch_bytes(str(tmp_path / "nope.csv")))
        assert isinstance(info.value, SourceError)
        assert info.value.source.endswith("nope.csv")

    def test_local_file_round_trip(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("a,b\n1,2\n")
        rows = asyncio.run(load_delimited(str(path)))
        assert rows == [{"a": "1", "b": "2"}]

    def test_http_success_and_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/ok.csv":
                return httpx.Response(200, content=b"a\n1\n")
            return httpx.Response(404)

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                rows = await load_delimited("https://data.example/ok.csv", client)
                with pytest.raises(FetchError) as info:
                    await fetch_bytes("https://data.example/missing.csv", client)
            return rows, info.value

        rows, err = asyncio.run(scenario())
        assert rows == [{"a": "1"}]
        assert "404" in err.message

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                await fetch_bytes("https://data.example/a.csv", client)

        with pytest.raises(FetchError):
            asyncio.run(scenario())


class TestWorkbook:

    def test_parse_workbook_grid(self):
        grid = parse_workbook(workbook_bytes(reserve_grid([("December 31, 2025", 10.0)])))
        assert grid[0][2] == "LBI"
        assert grid[2][1] == "Reserves"
        assert grid[2][16] == 10.0

    def test_unreadable_workbook(self):
        with pytest.raises(FetchError):
            parse_workbook(b"not a zip", source="r.xlsx")

    def test_missing_sheet(self):
        with pytest.raises(FetchError):
            parse_workbook(workbook_bytes([["x"]]), sheet="Weekly")

    def test_layout_selected_by_header(self):
        assert select_layout(reserve_grid([])).version == "2025-12"
        # Unknown header falls back to the default layout
        assert select_layout([["something", "else"]]) is DEFAULT_RESERVE_LAYOUT


class TestWeeklyWindows:

    def test_windows_rebuilt_from_offsets(self):
        grid = reserve_grid([("December 31, 2025", 5_000_000.0), ("December 24, 2025", 4_900_000.0)])
        weeks = assemble_weekly_windows(grid)

        assert [w.label for w in weeks] == ["December 31, 2025", "December 24, 2025"]
        first = weeks[0]
        assert first.week_ending == dt.date(2025, 12, 31)
        assert first.total_reserves == 5_000_000.0
        assert first.total_features == 42
        assert first.weekly_change == -1500.0
        assert first.weekly_feature_change == 2
        assert (first.lbi_reserves, first.dcce_reserves, first.lpd_reserves) == (100.0, 20.0, 30.0)
        assert (first.col_reserves, first.umbi_reserves) == (5.0, 7.0)

    def test_window_without_reserves_label_dropped(self):
        grid = reserve_grid([("December 31, 2025", 1.0), ("December 24, 2025", 2.0)])
        grid[2][1] = "Something else"
        weeks = assemble_weekly_windows(grid)
        assert [w.label for w in weeks] == ["December 24, 2025"]

    def test_datetime_anchor_cell(self):
        grid = reserve_grid([("January 7, 2026", 3.0)])
        grid[1][1] = dt.datetime(2026, 1, 7)
        weeks = assemble_weekly_windows(grid)
        assert weeks[0].label == "January 7, 2026"
        assert weeks[0].week_ending == dt.date(2026, 1, 7)

    def test_truncated_tail_window_degrades_to_zero(self):
        grid = reserve_grid([("December 31, 2025", 9.0)])[:3]
        weeks = assemble_weekly_windows(grid)
        assert weeks[0].total_reserves == 9.0
        assert weeks[0].total_features == 0.0


class TestReserveChanges:

    def test_change_row_read_from_offsets(self):
        grid = reserve_grid([("December 31, 2025", 5.0), ("December 24, 2025", 4.0)], changes=("(1,521,644)", -88_728_584))
        assert read_reserve_changes(grid) == {"monthly_change": -1_521_644.0, "yearly_change": -88_728_584.0}

    def test_change_row_does_not_disturb_windows(self):
        grid = reserve_grid([("December 31, 2025", 5.0)], changes=(1.0, 2.0))
        [week] = assemble_weekly_windows(grid)
        assert week.weekly_change == -1500.0

    def test_change_row_survives_workbook_round_trip(self):
        grid = parse_workbook(workbook_bytes(reserve_grid([("December 31, 2025", 5.0)], changes=(-10.0, -20.0))))
        assert read_reserve_changes(grid, select_layout(grid)) == {"monthly_change": -10.0, "yearly_change": -20.0}

    def test_missing_change_row(self, warnings_logged):
        assert read_reserve_changes(reserve_grid([("December 31, 2025", 5.0)])) is None
        assert any("Change in Reserves" in m for m in warnings_logged)
