"""Presentation helpers: tab lifecycle and paginated, sortable table rows."""

from github_org_analyser.core.constants import DEFAULT_ROWS_PER_PAGE, ROWS_PER_PAGE_OPTIONS
from github_org_analyser.presentation.table import ReportTab, TablePage, paginate_rows

__all__ = ["DEFAULT_ROWS_PER_PAGE", "ROWS_PER_PAGE_OPTIONS", "ReportTab", "TablePage", "paginate_rows"]
