"""
Pytest tests for CSV export and the Excel project-metadata reader.

Run from the repository root:
    pytest gitlab_analyze/tests/test_export.py -v
"""

import csv
from datetime import date, datetime

import pytest
from openpyxl import Workbook

from gitlab_analyze.common_types import CommitDiffStats, UserStats
from gitlab_analyze.exceptions import ProjectFileError
from gitlab_analyze.export import CSV_HEADER, export_stats_to_csv, report_filename
from gitlab_analyze.projects_file import ProjectInfo, load_project_infos, project_info_map

NOW = datetime(2024, 2, 1, 9, 30, 5)


def _stats():
    alice = UserStats()
    alice.add_commit("12", CommitDiffStats(additions=10, deletions=2, total=11))
    alice.add_commit("7", CommitDiffStats(additions=1, deletions=1, total=2))
    bob = UserStats()
    bob.add_commit("99", CommitDiffStats(additions=3, deletions=0, total=3))
    return {"alice": alice, "bob": bob}


def _read_rows(path):
    with path.open(encoding="utf-8-sig", newline="") as f:
        return list(csv.reader(f))


# ============================================================================
# CSV export
# ============================================================================

def test_report_filename_format():
    assert report_filename("alice", date(2024, 1, 1), date(2024, 1, 31), "20240201_093005") == \
        "gitlab_stats_alice_2024-01-01_2024-01-31_20240201_093005.csv"


def test_report_filename_sanitizes_author():
    name = report_filename("Jane Doe/ops", "2024-01-01", "2024-01-31", "t")
    assert name == "gitlab_stats_Jane_Doe_ops_2024-01-01_2024-01-31_t.csv"


def test_export_writes_one_file_per_author(tmp_path):
    infos = [ProjectInfo("12", "backend", "team/backend"), ProjectInfo("7", "web", "team/web")]
    paths = export_stats_to_csv(_stats(), date(2024, 1, 1), date(2024, 1, 31), infos, tmp_path / "out", now=NOW)
    assert [p.name for p in paths] == [
        "gitlab_stats_alice_2024-01-01_2024-01-31_20240201_093005.csv",
        "gitlab_stats_bob_2024-01-01_2024-01-31_20240201_093005.csv",
    ]
    rows = _read_rows(paths[0])
    assert rows[0] == CSV_HEADER
    # project ids in string order; Total is additions + deletions, Changes is GitLab's total
    assert rows[1:] == [
        ["alice", "backend", "team/backend", "10", "2", "11", "12"],
        ["alice", "web", "team/web", "1", "1", "2", "2"],
    ]


def test_export_starts_with_utf8_bom(tmp_path):
    paths = export_stats_to_csv(_stats(), "2024-01-01", "2024-01-31", [], tmp_path, now=NOW)
    assert paths[0].read_bytes().startswith(b"\xef\xbb\xbf")


def test_export_unknown_project_has_empty_name_and_path(tmp_path):
    paths = export_stats_to_csv(_stats(), "2024-01-01", "2024-01-31", [], tmp_path, now=NOW)
    rows = _read_rows(paths[1])
    assert rows[1] == ["bob", "", "", "3", "0", "3", "3"]


def test_export_of_empty_stats_writes_nothing(tmp_path):
    assert export_stats_to_csv({}, "2024-01-01", "2024-01-31", [], tmp_path, now=NOW) == []


def test_export_keeps_authors_whose_names_sanitize_alike(tmp_path):
    stats = {name: _stats()["bob"] for name in ("John Doe", "John_Doe", "john doe")}
    paths = export_stats_to_csv(stats, "2024-01-01", "2024-01-31", [], tmp_path, now=NOW)
    assert [p.name for p in paths] == [
        "gitlab_stats_John_Doe_2024-01-01_2024-01-31_20240201_093005.csv",
        "gitlab_stats_John_Doe_2_2024-01-01_2024-01-31_20240201_093005.csv",
        "gitlab_stats_john_doe_3_2024-01-01_2024-01-31_20240201_093005.csv",
    ]
    assert len(list(tmp_path.iterdir())) == 3
    # each file still names its own author
    assert [_read_rows(p)[1][0] for p in paths] == ["John Doe", "John_Doe", "john doe"]


# ============================================================================
# Excel project metadata
# ============================================================================

def _write_workbook(path, rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(str(path))


def test_load_project_infos_skips_header_and_rows_without_id(tmp_path):
    path = tmp_path / "projects.xlsx"
    _write_workbook(path, [
        ["ID", "Name", "Path"],
        [123, "backend", "team/backend"],
        [456.0, " web ", "team/web"],
        [789, None, "team/orphan"],
        ["321", "tools"],
        [None, "nameless", "team/nameless"],
    ])
    infos = load_project_infos(path)
    assert infos == [
        ProjectInfo("123", "backend", "team/backend"),
        ProjectInfo("456", "web", "team/web"),
        ProjectInfo("789", "", "team/orphan"),
        ProjectInfo("321", "tools", ""),
    ]
    assert set(project_info_map(infos)) == {"123", "456", "789", "321"}


def test_load_project_infos_missing_file(tmp_path):
    with pytest.raises(ProjectFileError):
        load_project_infos(tmp_path / "nope.xlsx")


def test_load_project_infos_not_a_workbook(tmp_path):
    path = tmp_path / "projects.xlsx"
    path.write_text("id,name,path\n1,a,b\n")
    with pytest.raises(ProjectFileError):
        load_project_infos(path)
