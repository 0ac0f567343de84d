import json
from datetime import datetime, timezone

import numpy as np
import pandas as pd
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

DEFAULT_INSIGHT_CONFIDENCE = 85

CHART_TYPES = [
    # 2D charts
    'bar', 'horizontalBar', 'stackedBar', 'groupedBar',
    'line', 'smoothLine', 'steppedLine', 'multiLine',
    'pie', 'doughnut', 'polarArea',
    'scatter', 'bubble',
    'area', 'stackedArea',
    'radar', 'heatmap',
    # 3D charts
    'bar3d', 'line3d', 'scatter3d', 'surface3d', 'mesh3d'
]
CHART_DIMENSIONS = ['2D', '3D']


def utcnow():
    return datetime.now(timezone.utc)


def make_json_serializable(obj):
    """Convert numpy types, NaN and datetimes to JSON-compatible types"""
    if isinstance(obj, dict):
        return {str(key): make_json_serializable(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [make_json_serializable(item) for item in obj]
    elif isinstance(obj, (np.bool_, bool)):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        return None if np.isnan(obj) or np.isinf(obj) else float(obj)
    elif isinstance(obj, np.ndarray):
        return make_json_serializable(obj.tolist())
    elif obj is None or isinstance(obj, (str, int)):
        return obj
    elif pd.isna(obj):
        return None
    elif hasattr(obj, 'isoformat'):  # datetime, date and time objects
        return obj.isoformat()
    elif hasattr(obj, 'item'):  # numpy scalars
        return obj.item()
    else:
        return str(obj)


class JSONFieldMixin:
    """Helpers for JSON payloads kept in Text columns"""

    @staticmethod
    def _dump(value):
        if value is None:
            return None
        return json.dumps(make_json_serializable(value))

    @staticmethod
    def _load(raw, default=None):
        if raw:
            return json.loads(raw)
        return default


class Upload(JSONFieldMixin, db.Model):
    """An uploaded workbook with its parsed tables"""
    id = db.Column(db.Integer, primary_key=True)
    owner = db.Column(db.String(64), nullable=False, index=True)
    original_file_name = db.Column(db.String(255), nullable=False)
    stored_file_ref = db.Column(db.String(500), nullable=False)
    file_size_bytes = db.Column(db.Integer, nullable=False, default=0)
    mime_type = db.Column(db.String(100), nullable=False)
    sheet_count = db.Column(db.Integer, default=0)
    row_count = db.Column(db.Integer, default=0)
    column_count = db.Column(db.Integer, default=0)
    sheet_names = db.Column(db.Text)  # JSON list
    parsed_data = db.Column(db.Text)  # JSON: sheet name -> sheet table
    parse_metadata = db.Column(db.Text)  # JSON
    status = db.Column(db.String(20), nullable=False, default='processing', index=True)
    error_message = db.Column(db.Text)
    chart_count = db.Column(db.Integer, nullable=False, default=0)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_sheet_names(self, names):
        self.sheet_names = self._dump(list(names))

    def get_sheet_names(self):
        return self._load(self.sheet_names, [])

    def set_parsed_data(self, sheets):
        self.parsed_data = self._dump(sheets)

    def get_parsed_data(self):
        return self._load(self.parsed_data)

    def set_parse_metadata(self, metadata):
        self.parse_metadata = self._dump(metadata)

    def get_parse_metadata(self):
        return self._load(self.parse_metadata, {})

    def get_summary(self):
        return {
            'id': self.id,
            'owner': self.owner,
            'original_file_name': self.original_file_name,
            'file_size_bytes': self.file_size_bytes,
            'mime_type': self.mime_type,
            'sheet_count': self.sheet_count,
            'row_count': self.row_count,
            'column_count': self.column_count,
            'sheet_names': self.get_sheet_names(),
            'status': self.status,
            'error_message': self.error_message,
            'chart_count': self.chart_count,
            'download_count': self.download_count,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def to_dict(self, include_data=False):
        result = self.get_summary()
        result['stored_file_ref'] = self.stored_file_ref
        result['metadata'] = self.get_parse_metadata()
        if include_data:
            result['parsed_data'] = self.get_parsed_data()
        return result


class Chart(JSONFieldMixin, db.Model):
    """A chart configuration plus the chart payload built by the client"""
    id = db.Column(db.Integer, primary_key=True)
    owner = db.Column(db.String(64), nullable=False, index=True)
    upload_id = db.Column(db.Integer, db.ForeignKey('upload.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(1000))
    chart_type = db.Column(db.String(30), nullable=False, index=True)
    chart_dimension = db.Column(db.String(2), nullable=False)
    configuration = db.Column(db.Text, nullable=False)  # JSON
    chart_data = db.Column(db.Text, nullable=False)  # JSON
    image_url = db.Column(db.String(500))
    view_count = db.Column(db.Integer, nullable=False, default=0)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    tags = db.Column(db.Text)  # JSON list
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    upload = db.relationship('Upload', backref=db.backref('charts', lazy=True))

    def set_configuration(self, configuration):
        self.configuration = self._dump(configuration)

    def get_configuration(self):
        return self._load(self.configuration, {})

    def set_chart_data(self, chart_data):
        self.chart_data = self._dump(chart_data)

    def get_chart_data(self):
        return self._load(self.chart_data, {})

    def set_tags(self, tags):
        self.tags = self._dump(list(tags or []))

    def get_tags(self):
        return self._load(self.tags, [])

    def to_dict(self):
        return {
            'id': self.id,
            'owner': self.owner,
            'upload_id': self.upload_id,
            'title': self.title,
            'description': self.description,
            'chart_type': self.chart_type,
            'chart_dimension': self.chart_dimension,
            'configuration': self.get_configuration(),
            'chart_data': self.get_chart_data(),
            'image_url': self.image_url,
            'view_count': self.view_count,
            'download_count': self.download_count,
            'is_public': self.is_public,
            'tags': self.get_tags(),
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class Insight(JSONFieldMixin, db.Model):
    """A generated insight about an upload"""
    id = db.Column(db.Integer, primary_key=True)
    owner = db.Column(db.String(64), nullable=False, index=True)
    upload_id = db.Column(db.Integer, db.ForeignKey('upload.id'), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    data = db.Column(db.Text)  # JSON
    confidence = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    upload = db.relationship('Upload', backref=db.backref('insights', lazy=True))

    def set_data(self, data):
        self.data = self._dump(data or {})

    def get_data(self):
        return self._load(self.data, {})

    def to_dict(self):
        return {
            'id': self.id,
            'owner': self.owner,
            'upload_id': self.upload_id,
            'kind': self.kind,
            'title': self.title,
            'content': self.content,
            'data': self.get_data(),
            'confidence': self.confidence,
            'status': self.status,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
