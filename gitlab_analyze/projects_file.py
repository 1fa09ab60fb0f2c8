# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Project metadata from an Excel workbook.

Expected layout (first worksheet, header row skipped):

    | ID  | Name    | Path with namespace |
    | 123 | backend | team/backend        |

Only used for display names in logs and CSV rows; statistics do not need it.
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .exceptions import ProjectFileError


@dataclass(frozen=True)
class ProjectInfo:
    id: str
    name: str
    path_with_namespace: str


def _cell_text(v: Any) -> str:
    if v is None:
        return ""
    # Excel stores numeric ids as floats (123 -> 123.0).
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v).strip()


def load_project_infos(path: Union[str, Path]) -> List[ProjectInfo]:
    p = Path(path).expanduser()
    if not p.is_file():
        raise ProjectFileError(f"project file not found: {p}")
    try:
        wb = load_workbook(filename=str(p), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
        raise ProjectFileError(f"failed to open project file {p}: {e}") from e

    try:
        ws = wb.worksheets[0]
        out: List[ProjectInfo] = []
        for i, row in enumerate(ws.iter_rows(values_only=True)):
            if i == 0:
                continue
            cells = [_cell_text(v) for v in (row or ())[:3]]
            cells += [""] * (3 - len(cells))
            # Blank name/path is allowed; the id alone is enough to match a project.
            if not cells[0]:
                continue
            out.append(ProjectInfo(id=cells[0], name=cells[1], path_with_namespace=cells[2]))
        return out
    finally:
        wb.close()


def project_info_map(infos: Iterable[ProjectInfo]) -> Dict[str, ProjectInfo]:
    return {info.id: info for info in infos}
