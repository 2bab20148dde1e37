"""Report rendering, already in canonical order."""

from dataclasses import dataclass


@dataclass
class Report:
    title: str
    rows: list


def render(report: Report) -> str:
    return "\n".join([_header(report), *_rows(report)])


def _header(report):
    return report.title.upper()


def _rows(report):
    return [_cell(row) for row in report.rows]


def _cell(value):
    return str(value)
