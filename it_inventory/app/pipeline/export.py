"""
Assignment export pipeline.

Shapes assignment records into tables and encodes them either as an xlsx
workbook (openpyxl) with the assignment list plus derived sheets, or as a
single flat CSV table. The file is built entirely in memory; ExportResult.save
writes it through a temporary file so a failed write never leaves a partial
file behind.
"""

import csv
import io
import logging
import os
import tempfile
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..exceptions import ExportError
from .constants import AssignmentStatus, asset_type_label, normalize_status, status_label
from .records import days_between, parse_date
from .stats import compute_stats

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
CSV_MIMETYPE = 'text/csv'

FORMAT_ALIASES = {
    'xlsx': 'xlsx',
    'excel': 'xlsx',
    'spreadsheet': 'xlsx',
    'csv': 'csv',
}

SHEET_NAMES = {
    'ko': {
        'assignments': '할당 목록',
        'summary': '통계 요약',
        'history': '할당 이력',
        'utilization': '자산 활용도',
        'employees': '직원별 할당',
    },
    'en': {
        'assignments': 'Assignment List',
        'summary': 'Summary Statistics',
        'history': 'History',
        'utilization': 'Asset Utilization',
        'employees': 'Per-Employee Breakdown',
    },
}

# header labels: (ko, en)
Column = namedtuple('Column', ['ko', 'en', 'value'])


def _employee(record, attr):
    return (record.get('employee') or {}).get(attr) or ''


def _asset(record, attr):
    return (record.get('asset') or {}).get(attr) or ''


def _base_columns(locale):
    return [
        Column('할당 ID', 'Assignment ID', lambda r: r.get('id')),
        Column('직원명', 'Employee', lambda r: r.get('employee_name') or ''),
        Column('자산명', 'Asset', lambda r: r.get('asset_description') or ''),
        Column('자산 유형', 'Asset Type', lambda r: asset_type_label(r.get('asset_type'), locale)),
        Column('할당일', 'Assigned Date', lambda r: parse_date(r.get('assigned_date'))),
        Column('반납일', 'Return Date', lambda r: parse_date(r.get('return_date'))),
        Column('상태', 'Status', lambda r: status_label(normalize_status(r.get('status')), locale)),
        Column('할당자', 'Assigned By', lambda r: r.get('assigned_by') or ''),
        Column('메모', 'Notes', lambda r: r.get('notes') or ''),
        Column('생성일', 'Created', lambda r: parse_date(r.get('created_at'))),
        Column('수정일', 'Updated', lambda r: parse_date(r.get('updated_at'))),
    ]


EMPLOYEE_COLUMNS = [
    Column('부서', 'Department', lambda r: _employee(r, 'department')),
    Column('직책', 'Position', lambda r: _employee(r, 'position')),
    Column('이메일', 'Email', lambda r: _employee(r, 'email')),
]

ASSET_COLUMNS = [
    Column('자산 ID', 'Asset ID', lambda r: r.get('asset_id')),
    Column('제조사', 'Manufacturer', lambda r: _asset(r, 'manufacturer')),
    Column('모델', 'Model', lambda r: _asset(r, 'model')),
    Column('시리얼 번호', 'Serial Number', lambda r: _asset(r, 'serial_number')),
]


@dataclass
class ExportOptions:
    include_employee_details: bool = True
    include_asset_details: bool = True
    include_history: bool = True
    include_statistics: bool = True
    format: str = 'xlsx'
    file_name: Optional[str] = None
    locale: str = 'ko'

    def __post_init__(self):
        fmt = FORMAT_ALIASES.get(str(self.format).strip().lower())
        if fmt is None:
            raise ValueError(f"Invalid export format: {self.format}")
        self.format = fmt
        if self.locale not in SHEET_NAMES:
            raise ValueError(f"Invalid export locale: {self.locale}")
        if not self.file_name:
            self.file_name = f'assignments_export_{date.today().isoformat()}'

    @property
    def full_file_name(self) -> str:
        return f'{self.file_name}.{self.format}'


@dataclass
class ExportResult:
    file_name: str
    mimetype: str
    content: bytes
    count: int
    sheets: List[str] = field(default_factory=list)

    def save(self, directory: str) -> str:
        """Write the export into directory atomically and return its path."""
        os.makedirs(directory, exist_ok=True)
        target = os.path.join(directory, os.path.basename(self.file_name))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.part')
        try:
            with os.fdopen(fd, 'wb') as handle:
                handle.write(self.content)
            os.replace(tmp_path, target)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ExportError(str(e)) from e
        return target


# ==================== Table shaping ====================

def assignment_columns(options: ExportOptions) -> List[Column]:
    columns = _base_columns(options.locale)
    if options.include_employee_details:
        columns += EMPLOYEE_COLUMNS
    if options.include_asset_details:
        columns += ASSET_COLUMNS
    return columns


def _header(columns: List[Column], locale: str) -> List[str]:
    return [getattr(column, locale) for column in columns]


def assignment_table(assignments, options: ExportOptions):
    columns = assignment_columns(options)
    rows = [[column.value(record) for column in columns] for record in assignments]
    return _header(columns, options.locale), rows


def summary_table(assignments, locale: str):
    stats = compute_stats(assignments)
    ko = locale == 'ko'
    header = ['항목', '값', '비율(%)'] if ko else ['Item', 'Value', 'Percent']
    pct = stats['percentages']
    rows = [
        ['총 할당 수' if ko else 'Total assignments', stats['total'], ''],
        ['활성 할당' if ko else 'Active', stats['active'], pct['by_status']['in_use']],
        ['반납 완료' if ko else 'Returned', stats['returned'], pct['by_status']['returned']],
        ['연체' if ko else 'Overdue', stats['overdue'], pct['by_status']['overdue']],
        ['', '', ''],
    ]
    for asset_type, count in stats['by_asset_type'].items():
        rows.append([asset_type_label(asset_type, locale), count, pct['by_asset_type'][asset_type]])
    rows.append(['', '', ''])
    status_prefix = '상태' if ko else 'Status'
    for status, count in stats['by_status'].items():
        rows.append([f'{status_prefix}: {status_label(status, locale)}', count, pct['by_status'][status]])
    rows.append(['', '', ''])
    dept_prefix = '부서' if ko else 'Department'
    for department, count in stats['by_department'].items():
        rows.append([f'{dept_prefix}: {department}', count, pct['by_department'][department]])
    return header, rows


def history_table(assignments, locale: str):
    ko = locale == 'ko'
    header = (['할당 ID', '직원명', '자산명', '할당일', '반납일', '사용 기간(일)', '반납 상태', '메모']
              if ko else
              ['Assignment ID', 'Employee', 'Asset', 'Assigned Date', 'Return Date', 'Days Used',
               'Return Condition', 'Notes'])
    rows = []
    for record in assignments:
        if not record.get('return_date'):
            continue
        rows.append([
            record.get('id'),
            record.get('employee_name') or '',
            record.get('asset_description') or '',
            parse_date(record.get('assigned_date')),
            parse_date(record.get('return_date')),
            days_between(record.get('assigned_date'), record.get('return_date')),
            record.get('return_condition') or '',
            record.get('notes') or '',
        ])
    return header, rows


def utilization_table(assignments, locale: str):
    usage: Dict[Any, Dict[str, Any]] = {}
    for record in assignments:
        key = (record.get('asset_type') or '', record.get('asset_id') or '')
        entry = usage.setdefault(key, {
            'asset_id': record.get('asset_id'),
            'name': record.get('asset_description') or '',
            'asset_type': record.get('asset_type'),
            'total': 0,
            'active': 0,
            'closed_days': [],
            'last_assigned': None,
        })
        entry['total'] += 1
        if normalize_status(record.get('status')) == AssignmentStatus.IN_USE.value:
            entry['active'] += 1
        if record.get('return_date'):
            entry['closed_days'].append(days_between(record.get('assigned_date'), record.get('return_date')))
        assigned = parse_date(record.get('assigned_date'))
        if assigned and (entry['last_assigned'] is None or assigned > entry['last_assigned']):
            entry['last_assigned'] = assigned

    ko = locale == 'ko'
    header = (['자산 ID', '자산명', '자산 유형', '총 할당 횟수', '현재 활성 할당', '평균 사용 일수', '최근 할당일']
              if ko else
              ['Asset ID', 'Asset', 'Asset Type', 'Total Assignments', 'Active Assignments',
               'Average Days Used', 'Last Assigned'])
    rows = []
    for key in sorted(usage):
        entry = usage[key]
        closed = entry['closed_days']
        rows.append([
            entry['asset_id'],
            entry['name'],
            asset_type_label(entry['asset_type'], locale),
            entry['total'],
            entry['active'],
            round(sum(closed) / len(closed), 1) if closed else 0,
            entry['last_assigned'],
        ])
    return header, rows


def employee_table(assignments, locale: str):
    breakdown: Dict[str, Dict[str, Any]] = {}
    for record in assignments:
        entry = breakdown.setdefault(record.get('employee_id') or '', {
            'name': record.get('employee_name') or '',
            'department': _employee(record, 'department'),
            'position': _employee(record, 'position'),
            'total': 0,
            AssignmentStatus.IN_USE.value: 0,
            AssignmentStatus.RETURNED.value: 0,
            AssignmentStatus.OVERDUE.value: 0,
        })
        entry['total'] += 1
        status = normalize_status(record.get('status'))
        if status in entry:
            entry[status] += 1

    ko = locale == 'ko'
    header = (['직원 ID', '직원명', '부서', '직책', '총 할당', '현재 사용중', '반납 완료', '연체']
              if ko else
              ['Employee ID', 'Employee', 'Department', 'Position', 'Total', 'In Use', 'Returned', 'Overdue'])
    rows = [
        [employee_id, e['name'], e['department'], e['position'], e['total'],
         e['in_use'], e['returned'], e['overdue']]
        for employee_id, e in sorted(breakdown.items())
    ]
    return header, rows


# ==================== Encoding ====================

THIN = Side(style='thin')
HEADER_STYLE = {
    'font': Font(bold=True, color='FFFFFF'),
    'fill': PatternFill(start_color='366092', end_color='366092', fill_type='solid'),
    'alignment': Alignment(horizontal='center', vertical='center'),
    'border': Border(left=THIN, right=THIN, top=THIN, bottom=THIN),
}
DATE_FORMAT = 'yyyy-mm-dd'


def _apply_style(cell, style: Dict[str, Any]):
    for attr, value in style.items():
        setattr(cell, attr, value)


def _add_sheet(workbook: Workbook, title: str, header: List[str], rows: List[List[Any]]):
    ws = workbook.create_sheet(title=title)
    ws.append(header)
    for cell in ws[1]:
        _apply_style(cell, HEADER_STYLE)
    for row in rows:
        ws.append(row)
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            if isinstance(cell.value, date):
                cell.number_format = DATE_FORMAT
            elif isinstance(cell.value, str) and cell.value.startswith('='):
                # Text starting with '=' stays text, not a formula
                cell.data_type = 's'
    ws.freeze_panes = 'A2'

    for column_cells in ws.columns:
        length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(max(length + 2, 12), 50)
    return ws


def build_workbook(assignments, options: ExportOptions) -> Workbook:
    names = SHEET_NAMES[options.locale]
    workbook = Workbook()
    workbook.remove(workbook.active)

    _add_sheet(workbook, names['assignments'], *assignment_table(assignments, options))
    if options.include_statistics:
        _add_sheet(workbook, names['summary'], *summary_table(assignments, options.locale))
    if options.include_history:
        _add_sheet(workbook, names['history'], *history_table(assignments, options.locale))
    _add_sheet(workbook, names['utilization'], *utilization_table(assignments, options.locale))
    _add_sheet(workbook, names['employees'], *employee_table(assignments, options.locale))
    return workbook


def _csv_value(value):
    if value is None:
        return ''
    if isinstance(value, date):
        return value.isoformat()
    return value


def encode_csv(header: List[str], rows: List[List[Any]]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(header)
    for row in rows:
        writer.writerow([_csv_value(v) for v in row])
    # BOM so spreadsheet applications pick up UTF-8 for Korean headers
    return output.getvalue().encode('utf-8-sig')


def export_assignments(assignments, options: Optional[ExportOptions] = None) -> ExportResult:
    """Encode assignments as an xlsx workbook or a flat CSV table.

    Raises ExportError when shaping or encoding fails.
    """
    options = options or ExportOptions()
    records = list(assignments)
    try:
        if options.format == 'csv':
            header, rows = assignment_table(records, options)
            content = encode_csv(header, rows)
            sheets = [SHEET_NAMES[options.locale]['assignments']]
            mimetype = CSV_MIMETYPE
        else:
            workbook = build_workbook(records, options)
            buffer = io.BytesIO()
            workbook.save(buffer)
            content = buffer.getvalue()
            sheets = workbook.sheetnames
            mimetype = XLSX_MIMETYPE
    except Exception as e:
        logger.exception("Assignment export failed (%s, %d records)", options.format, len(records))
        raise ExportError(str(e) or e.__class__.__name__) from e

    logger.info("Exported %d assignments to %s", len(records), options.full_file_name)
    return ExportResult(
        file_name=options.full_file_name,
        mimetype=mimetype,
        content=content,
        count=len(records),
        sheets=sheets,
    )
