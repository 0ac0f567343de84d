import logging
from dataclasses import dataclass, field

from .anomaly_detector import AnomalyDetector
from .data_type_analyzer import is_quantitative
from .trend_detector import TrendDetector
from utils.exceptions import AnalyticsError, InsufficientDataError, NotFoundError, ValidationError

INSIGHT_KINDS = ('summary', 'trend', 'anomaly', 'prediction', 'recommendation')
MISSING_DATA_WARNING_PERCENT = 10
CATEGORICAL_UNIQUE_RATIO = 0.5


@dataclass
class InsightRecord:
    kind: str
    title: str
    content: str
    data: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'kind': self.kind,
            'title': self.title,
            'content': self.content,
            'data': self.data
        }


def numeric_columns(table):
    """Headers whose values pass the quantitative (>70% numeric) rule"""
    return [header for header in table.headers if is_quantitative(table.column_values(header))]


def categorical_columns(table):
    """Headers with repeated values: distinct count (blanks included) under half the rows"""
    columns = []
    for header in table.headers:
        values = table.column_values(header)
        unique_count = len(set(values))
        if unique_count < len(values) * CATEGORICAL_UNIQUE_RATIO and unique_count > 1:
            columns.append(header)
    return columns


class InsightGenerator:
    """Builds summary, trend, anomaly and recommendation insights for a workbook.

    Only the first sheet is analysed, and trend/anomaly detection only looks at
    its first numeric column.
    """

    def __init__(self):
        self.trend_detector = TrendDetector()
        self.anomaly_detector = AnomalyDetector()

    def generate_all(self, workbook_result):
        """Every insight that can be produced; failed steps are left out"""
        insights = []

        self._collect(insights, 'summary', self.generate_summary, workbook_result)

        table = workbook_result.first_sheet()
        if table is not None and table.rows:
            columns = numeric_columns(table)
            if columns:
                column = columns[0]
                self._collect(insights, 'trend', self.generate_trend, workbook_result, column)
                self._collect(insights, 'anomaly', self.generate_anomaly, workbook_result, column)

        self._collect(insights, 'recommendation', self.generate_recommendations, workbook_result)

        logging.info(f"Generated {len(insights)} insight(s)")
        return insights

    def generate(self, kind, workbook_result, column=None):
        """A single insight of the requested kind"""
        if kind == 'summary':
            return self.generate_summary(workbook_result)
        if kind == 'recommendation':
            return self.generate_recommendations(workbook_result)
        if kind in ('trend', 'anomaly'):
            if not column:
                label = 'trend analysis' if kind == 'trend' else 'anomaly detection'
                raise ValidationError(f'Column name required for {label}')
            if kind == 'trend':
                return self.generate_trend(workbook_result, column)
            return self.generate_anomaly(workbook_result, column)
        raise ValidationError(f'Invalid insight type: {kind}')

    def generate_summary(self, workbook_result):
        table = self._require_first_sheet(workbook_result, 'No data available for summary')
        workbook = workbook_result.workbook

        content = (f'This dataset contains {workbook.sheet_count} sheet(s) with a total of '
                   f'{workbook.total_rows} rows and {workbook.total_columns} columns. '
                   f'The primary sheet has {table.row_count} data rows across '
                   f'{table.column_count} columns. ')

        findings = []
        columns = numeric_columns(table) if table.rows else []
        if columns:
            findings.append({
                'type': 'numeric_analysis',
                'message': f'Found {len(columns)} numeric column(s) suitable for quantitative analysis.'
            })

        total_cells = table.row_count * table.column_count
        missing_cells = sum(
            1 for row in table.rows for value in row.values() if value is None or value == '')
        missing_percentage = missing_cells / total_cells * 100 if total_cells else 0.0
        if missing_cells > 0:
            findings.append({
                'type': 'data_quality',
                'message': f'{missing_percentage:.2f}% of cells contain missing or empty values.',
                'severity': 'warning' if missing_percentage > MISSING_DATA_WARNING_PERCENT else 'info'
            })

        return InsightRecord(
            kind='summary',
            title='Data Summary',
            content=content,
            data={
                'sheet_count': workbook.sheet_count,
                'total_rows': workbook.total_rows,
                'total_columns': workbook.total_columns,
                'row_count': table.row_count,
                'column_count': table.column_count,
                'numeric_columns': columns,
                'missing_percentage': round(missing_percentage, 2),
                'insights': findings
            }
        )

    def generate_trend(self, workbook_result, column):
        values = self._column_values(workbook_result, column)
        result = self.trend_detector.detect(values, column)
        return InsightRecord(kind='trend', title=result.title, content=result.content,
                             data=result.to_data())

    def generate_anomaly(self, workbook_result, column):
        values = self._column_values(workbook_result, column)
        result = self.anomaly_detector.detect(values, column)
        return InsightRecord(kind='anomaly', title=result.title, content=result.content,
                             data=result.to_data())

    def generate_recommendations(self, workbook_result):
        table = self._require_first_sheet(workbook_result, 'No data available')

        numeric = numeric_columns(table) if table.rows else []
        categorical = categorical_columns(table)
        recommendations = []

        if len(numeric) >= 2:
            recommendations.append({
                'type': 'visualization',
                'chart_type': 'scatter',
                'title': 'Scatter Plot Analysis',
                'message': (f'Consider creating a scatter plot using {numeric[0]} and '
                            f'{numeric[1]} to identify correlations.'),
                'columns': numeric[:2],
                'priority': 'high'
            })

        if numeric:
            recommendations.append({
                'type': 'visualization',
                'chart_type': 'line',
                'title': 'Trend Analysis',
                'message': f'Create a line chart to visualize trends in {numeric[0]} over time.',
                'columns': [numeric[0]],
                'priority': 'medium'
            })

        if categorical and numeric:
            recommendations.append({
                'type': 'visualization',
                'chart_type': 'bar',
                'title': 'Category Comparison',
                'message': (f'Use a bar chart to compare {numeric[0]} across different '
                            f'{categorical[0]} categories.'),
                'columns': [categorical[0], numeric[0]],
                'priority': 'high'
            })

        return InsightRecord(
            kind='recommendation',
            title='Analysis Recommendations',
            content=(f'Based on your data structure, here are {len(recommendations)} '
                     f'recommended analysis approaches.'),
            data={'recommendations': recommendations}
        )

    def _collect(self, insights, kind, step, *args):
        try:
            insights.append(step(*args))
        except AnalyticsError as e:
            logging.warning(f"Skipping {kind} insight: {e.message}")
        except Exception as e:
            logging.exception(f"Unexpected error in {kind} insight, skipping: {str(e)}")

    def _require_first_sheet(self, workbook_result, message):
        table = workbook_result.first_sheet()
        if table is None:
            raise InsufficientDataError(message)
        return table

    def _column_values(self, workbook_result, column):
        table = self._require_first_sheet(workbook_result, 'No data available for analysis')
        if column not in table.headers:
            raise NotFoundError(f"Column '{column}' not found")
        return table.column_values(column)
