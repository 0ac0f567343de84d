import logging
from datetime import datetime, timezone

from flask import request, jsonify, current_app
from sqlalchemy import case, func
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from models import (
    db, Upload, Chart, Insight, CHART_TYPES, CHART_DIMENSIONS, DEFAULT_INSIGHT_CONFIDENCE
)
from parsers.file_parser import FileParserFactory
from parsers.excel_parser import WorkbookResult
from parsers.table_normalizer import SheetTable
from analyzers.data_type_analyzer import DataTypeAnalyzer
from analyzers.insight_generator import InsightGenerator, INSIGHT_KINDS
from utils.access import current_identity, ensure_owner, get_owned, require_admin
from utils.exceptions import AnalyticsError, NotFoundError, ValidationError
from utils.file_storage import cleanup_file, save_upload, validate_upload
from utils.record_store import RecordStore, page_count

CHART_UPDATABLE_FIELDS = ['title', 'description', 'configuration', 'chart_data', 'tags', 'is_public']


def get_store():
    return RecordStore(db.session)


def pagination_args(default_limit):
    page = request.args.get('page', 1, type=int) or 1
    limit = request.args.get('limit', default_limit, type=int) or default_limit
    return max(page, 1), max(limit, 1)


def paginated_response(records, total, page, limit, serialize):
    return jsonify({
        'status': 'success',
        'count': len(records),
        'total': total,
        'page': page,
        'pages': page_count(total, limit),
        'data': [serialize(record) for record in records]
    })


def register_routes(app):
    """Register all routes with the Flask app"""

    # =======================
    # ERROR HANDLERS
    # =======================
    @app.errorhandler(AnalyticsError)
    def handle_analytics_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(error):
        max_mb = current_app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify({
            'status': 'error',
            'message': f'File size is too large. Maximum size is {max_mb}MB.'
        }), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        message = f'Route {request.path} not found' if error.code == 404 else error.description
        return jsonify({'status': 'error', 'message': message}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logging.exception(f"Unhandled error on {request.method} {request.path}: {str(error)}")
        db.session.rollback()
        return jsonify({'status': 'error', 'message': 'Server Error'}), 500

    # =======================
    # GENERAL
    # =======================
    @app.route('/')
    def index():
        return jsonify({
            'status': 'success',
            'message': 'Excel Analytics & Visualization Platform API',
            'endpoints': {
                'health': '/health',
                'uploads': '/api/uploads',
                'charts': '/api/charts',
                'insights': '/api/insights',
                'admin': '/api/admin'
            }
        })

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'success',
            'message': 'Server is running',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    # =======================
    # UPLOAD ROUTES
    # =======================
    @app.route('/api/uploads', methods=['POST'])
    def api_upload_file():
        """Upload an Excel file and parse it"""
        identity = current_identity()
        file = request.files.get('file')
        validate_upload(file)
        parser = FileParserFactory().get_parser(file.mimetype)

        file_path = save_upload(file, current_app.config['UPLOAD_FOLDER'])
        try:
            with open(file_path, 'rb') as f:
                file_bytes = f.read()

            result = parser.parse(file_bytes)
            upload = Upload(
                owner=identity.user_id,
                original_file_name=file.filename,
                stored_file_ref=file_path,
                file_size_bytes=len(file_bytes),
                mime_type=file.mimetype
            )

            if not result.success:
                upload.status = 'failed'
                upload.error_message = result.error_message
                get_store().create(upload)
                cleanup_file(file_path)
                return jsonify({
                    'status': 'error',
                    'message': f'Failed to parse Excel file: {result.error_message}',
                    'data': upload.get_summary()
                }), 400

            upload.sheet_count = result.workbook.sheet_count
            upload.row_count = result.workbook.total_rows
            upload.column_count = result.workbook.total_columns
            upload.set_sheet_names(result.workbook.sheet_names)
            upload.set_parsed_data(result.sheets_as_dict())
            upload.set_parse_metadata(result.metadata)
            upload.status = 'completed'
            get_store().create(upload)

        except Exception:
            db.session.rollback()
            cleanup_file(file_path)
            raise

        logging.info(f"Stored upload {upload.id} ({upload.original_file_name}) for user {identity.user_id}")
        return jsonify({
            'status': 'success',
            'message': 'File uploaded and parsed successfully',
            'data': upload.to_dict()
        }), 201

    @app.route('/api/uploads')
    def api_get_uploads():
        """Uploads of the current user, newest first"""
        identity = current_identity()
        page, limit = pagination_args(10)
        records, total = get_store().find(
            Upload,
            filters={'owner': identity.user_id, 'is_deleted': False},
            order_by=Upload.created_at.desc(),
            page=page,
            limit=limit
        )
        return paginated_response(records, total, page, limit, Upload.get_summary)

    @app.route('/api/uploads/stats')
    def api_upload_stats():
        identity = current_identity()
        row = db.session.query(
            func.count(Upload.id),
            func.coalesce(func.sum(Upload.file_size_bytes), 0),
            func.coalesce(func.sum(Upload.sheet_count), 0),
            func.coalesce(func.sum(Upload.row_count), 0),
            func.coalesce(func.sum(Upload.chart_count), 0)
        ).filter(Upload.owner == identity.user_id, Upload.is_deleted.is_(False)).one()

        return jsonify({
            'status': 'success',
            'data': {
                'total_uploads': row[0],
                'total_size': int(row[1]),
                'total_sheets': int(row[2]),
                'total_rows': int(row[3]),
                'total_charts': int(row[4])
            }
        })

    @app.route('/api/uploads/<int:upload_id>')
    def api_get_upload(upload_id):
        identity = current_identity()
        upload = get_owned(get_store(), Upload, upload_id, identity, 'Upload')
        return jsonify({'status': 'success', 'data': upload.to_dict(include_data=True)})

    @app.route('/api/uploads/<int:upload_id>/data')
    def api_get_upload_data(upload_id):
        """Parsed tables of an upload, optionally one sheet and column profiles"""
        identity = current_identity()
        upload = get_owned(get_store(), Upload, upload_id, identity, 'Upload')

        data = upload.get_parsed_data() or {}
        sheet_name = request.args.get('sheet')
        if sheet_name and sheet_name in data:
            data = {sheet_name: data[sheet_name]}

        response = {
            'upload_id': upload.id,
            'file_name': upload.original_file_name,
            'sheet_names': upload.get_sheet_names(),
            'data': data
        }
        if request.args.get('profile') in ('1', 'true'):
            analyzer = DataTypeAnalyzer()
            response['profiles'] = {
                name: analyzer.analyze(SheetTable.from_dict(table))
                for name, table in data.items()
            }

        return jsonify({'status': 'success', 'data': response})

    @app.route('/api/uploads/<int:upload_id>', methods=['DELETE'])
    def api_delete_upload(upload_id):
        """Soft-delete an upload and remove its stored file"""
        identity = current_identity()
        store = get_store()
        upload = store.find_by_id(Upload, upload_id)
        if upload is None:
            raise NotFoundError('Upload not found')
        ensure_owner(upload, identity, 'Not authorized to delete this upload')

        store.update(upload, is_deleted=True)
        cleanup_file(upload.stored_file_ref)

        return jsonify({'status': 'success', 'message': 'Upload deleted successfully'})

    # =======================
    # INSIGHT ROUTES
    # =======================
    def _analysable_upload(upload_id, identity, message):
        upload = get_owned(get_store(), Upload, upload_id, identity, 'Upload', message)
        if not upload.parsed_data:
            raise ValidationError('Upload data not available for analysis')
        return upload

    def _save_insight(upload, identity, record):
        insight = Insight(
            owner=identity.user_id,
            upload_id=upload.id,
            kind=record.kind,
            title=record.title,
            content=record.content,
            confidence=DEFAULT_INSIGHT_CONFIDENCE,
            status='completed'
        )
        insight.set_data(record.data)
        return get_store().create(insight)

    @app.route('/api/insights/generate/<int:upload_id>', methods=['POST'])
    def api_generate_insights(upload_id):
        """Generate every available insight for an upload"""
        identity = current_identity()
        upload = _analysable_upload(upload_id, identity,
                                    'Not authorized to generate insights for this upload')

        records = InsightGenerator().generate_all(WorkbookResult.from_upload(upload))
        saved = [_save_insight(upload, identity, record) for record in records]

        return jsonify({
            'status': 'success',
            'message': f'Generated {len(saved)} insights successfully',
            'count': len(saved),
            'data': [insight.to_dict() for insight in saved]
        }), 201

    @app.route('/api/insights/generate/<int:upload_id>/<kind>', methods=['POST'])
    def api_generate_specific_insight(upload_id, kind):
        """Generate one insight kind; trend and anomaly need a column"""
        identity = current_identity()
        upload = _analysable_upload(upload_id, identity, 'Not authorized')
        column = (request.get_json(silent=True) or {}).get('column')

        record = InsightGenerator().generate(kind, WorkbookResult.from_upload(upload), column)
        insight = _save_insight(upload, identity, record)

        return jsonify({
            'status': 'success',
            'message': 'Insight generated successfully',
            'data': insight.to_dict()
        }), 201

    @app.route('/api/insights')
    def api_get_insights():
        identity = current_identity()
        page, limit = pagination_args(20)

        filters = {'owner': identity.user_id}
        kind = request.args.get('type')
        if kind:
            if kind not in INSIGHT_KINDS:
                raise ValidationError(f'Invalid insight type: {kind}')
            filters['kind'] = kind
        upload_id = request.args.get('upload_id', type=int)
        if upload_id is not None:
            filters['upload_id'] = upload_id
        if request.args.get('is_read') is not None:
            filters['is_read'] = request.args.get('is_read') == 'true'

        records, total = get_store().find(
            Insight, filters=filters, order_by=Insight.created_at.desc(), page=page, limit=limit)
        return paginated_response(records, total, page, limit, Insight.to_dict)

    @app.route('/api/insights/stats')
    def api_insight_stats():
        identity = current_identity()
        unread = func.sum(case((Insight.is_read.is_(False), 1), else_=0))
        completed = func.sum(case((Insight.status == 'completed', 1), else_=0))

        by_kind = db.session.query(Insight.kind, func.count(Insight.id), unread).filter(
            Insight.owner == identity.user_id).group_by(Insight.kind).all()
        overall = db.session.query(func.count(Insight.id), unread, completed).filter(
            Insight.owner == identity.user_id).one()

        return jsonify({
            'status': 'success',
            'data': {
                'by_type': [
                    {'type': kind, 'count': count, 'unread': int(unread_count or 0)}
                    for kind, count, unread_count in by_kind
                ],
                'overall': {
                    'total': overall[0],
                    'unread': int(overall[1] or 0),
                    'completed': int(overall[2] or 0)
                }
            }
        })

    @app.route('/api/insights/upload/<int:upload_id>')
    def api_get_insights_by_upload(upload_id):
        identity = current_identity()
        upload = get_owned(get_store(), Upload, upload_id, identity, 'Upload',
                           'Not authorized to access insights for this upload')
        insights = Insight.query.filter_by(upload_id=upload.id, owner=upload.owner).order_by(
            Insight.created_at.desc()).all()
        return jsonify({
            'status': 'success',
            'count': len(insights),
            'data': [insight.to_dict() for insight in insights]
        })

    @app.route('/api/insights/<int:insight_id>')
    def api_get_insight(insight_id):
        """Fetch an insight; reading it marks it as read"""
        identity = current_identity()
        store = get_store()
        insight = get_owned(store, Insight, insight_id, identity, 'Insight')
        if not insight.is_read:
            store.update(insight, is_read=True)
        return jsonify({'status': 'success', 'data': insight.to_dict()})

    @app.route('/api/insights/<int:insight_id>/read', methods=['PATCH'])
    def api_mark_insight_read(insight_id):
        identity = current_identity()
        store = get_store()
        insight = store.find_by_id(Insight, insight_id)
        if insight is None:
            raise NotFoundError('Insight not found')
        ensure_owner(insight, identity, 'Not authorized to update this insight', allow_admin=False)
        store.update(insight, is_read=True)
        return jsonify({'status': 'success', 'message': 'Insight marked as read'})

    @app.route('/api/insights/<int:insight_id>', methods=['DELETE'])
    def api_delete_insight(insight_id):
        identity = current_identity()
        store = get_store()
        insight = get_owned(store, Insight, insight_id, identity, 'Insight',
                            'Not authorized to delete this insight')
        store.delete(insight)
        return jsonify({'status': 'success', 'message': 'Insight deleted successfully'})

    # =======================
    # CHART ROUTES
    # =======================
    def _get_viewable_chart(chart_id, identity):
        chart = get_store().find_by_id(Chart, chart_id)
        if chart is None:
            raise NotFoundError('Chart not found')
        if not chart.is_public:
            ensure_owner(chart, identity, 'Not authorized to access this chart')
        return chart

    @app.route('/api/charts', methods=['POST'])
    def api_create_chart():
        identity = current_identity()
        payload = request.get_json(silent=True) or {}
        validate_chart_payload(payload)

        store = get_store()
        upload = get_owned(store, Upload, payload['upload_id'], identity, 'Upload',
                           'Not authorized to create chart for this upload')

        chart = Chart(
            owner=identity.user_id,
            upload_id=upload.id,
            title=payload['title'].strip(),
            description=payload.get('description'),
            chart_type=payload['chart_type'],
            chart_dimension=payload['chart_dimension']
        )
        chart.set_configuration(payload['configuration'])
        chart.set_chart_data(payload['chart_data'])
        chart.set_tags(payload.get('tags'))
        store.create(chart)
        store.increment(Upload, upload.id, chart_count=1)

        return jsonify({
            'status': 'success',
            'message': 'Chart created successfully',
            'data': chart.to_dict()
        }), 201

    @app.route('/api/charts')
    def api_get_charts():
        identity = current_identity()
        page, limit = pagination_args(20)

        filters = {'owner': identity.user_id}
        upload_id = request.args.get('upload_id', type=int)
        if upload_id is not None:
            filters['upload_id'] = upload_id
        if request.args.get('chart_type'):
            filters['chart_type'] = request.args.get('chart_type')
        if request.args.get('dimension'):
            filters['chart_dimension'] = request.args.get('dimension')

        records, total = get_store().find(
            Chart, filters=filters, order_by=Chart.created_at.desc(), page=page, limit=limit)
        return paginated_response(records, total, page, limit, Chart.to_dict)

    @app.route('/api/charts/stats')
    def api_chart_stats():
        identity = current_identity()
        columns = (func.count(Chart.id),
                   func.coalesce(func.sum(Chart.view_count), 0),
                   func.coalesce(func.sum(Chart.download_count), 0))

        by_type = db.session.query(Chart.chart_type, *columns).filter(
            Chart.owner == identity.user_id).group_by(Chart.chart_type).order_by(
            func.count(Chart.id).desc()).all()
        overall = db.session.query(*columns).filter(Chart.owner == identity.user_id).one()

        return jsonify({
            'status': 'success',
            'data': {
                'by_type': [
                    {'type': chart_type, 'count': count, 'total_views': int(views),
                     'total_downloads': int(downloads)}
                    for chart_type, count, views, downloads in by_type
                ],
                'overall': {
                    'total_charts': overall[0],
                    'total_views': int(overall[1]),
                    'total_downloads': int(overall[2])
                }
            }
        })

    @app.route('/api/charts/upload/<int:upload_id>')
    def api_get_charts_by_upload(upload_id):
        identity = current_identity()
        upload = get_owned(get_store(), Upload, upload_id, identity, 'Upload',
                           'Not authorized to access charts for this upload')
        charts = Chart.query.filter_by(upload_id=upload.id, owner=upload.owner).order_by(
            Chart.created_at.desc()).all()
        return jsonify({
            'status': 'success',
            'count': len(charts),
            'data': [chart.to_dict() for chart in charts]
        })

    @app.route('/api/charts/<int:chart_id>')
    def api_get_chart(chart_id):
        """Fetch a chart (owner, admin or public) and count the view"""
        identity = current_identity()
        chart = _get_viewable_chart(chart_id, identity)
        get_store().increment(Chart, chart.id, view_count=1)
        return jsonify({'status': 'success', 'data': chart.to_dict()})

    @app.route('/api/charts/<int:chart_id>', methods=['PUT'])
    def api_update_chart(chart_id):
        identity = current_identity()
        store = get_store()
        chart = get_owned(store, Chart, chart_id, identity, 'Chart',
                          'Not authorized to update this chart')

        payload = request.get_json(silent=True) or {}
        updates = {name: payload[name] for name in CHART_UPDATABLE_FIELDS if name in payload}
        validate_chart_payload(updates, partial=True)

        if 'title' in updates:
            chart.title = updates['title'].strip()
        if 'description' in updates:
            chart.description = updates['description']
        if 'configuration' in updates:
            chart.set_configuration(updates['configuration'])
        if 'chart_data' in updates:
            chart.set_chart_data(updates['chart_data'])
        if 'tags' in updates:
            chart.set_tags(updates['tags'])
        if 'is_public' in updates:
            chart.is_public = bool(updates['is_public'])
        store.update(chart)

        return jsonify({
            'status': 'success',
            'message': 'Chart updated successfully',
            'data': chart.to_dict()
        })

    @app.route('/api/charts/<int:chart_id>', methods=['DELETE'])
    def api_delete_chart(chart_id):
        identity = current_identity()
        store = get_store()
        chart = get_owned(store, Chart, chart_id, identity, 'Chart',
                          'Not authorized to delete this chart')
        upload_id = chart.upload_id
        store.delete(chart)
        store.increment(Upload, upload_id, chart_count=-1)
        return jsonify({'status': 'success', 'message': 'Chart deleted successfully'})

    @app.route('/api/charts/<int:chart_id>/download', methods=['POST'])
    def api_chart_download(chart_id):
        identity = current_identity()
        chart = _get_viewable_chart(chart_id, identity)
        store = get_store()
        store.increment(Chart, chart.id, download_count=1)
        store.increment(Upload, chart.upload_id, download_count=1)
        return jsonify({'status': 'success', 'message': 'Download count updated'})

    # =======================
    # ADMIN ROUTES
    # =======================
    @app.route('/api/admin/dashboard')
    def api_admin_dashboard():
        identity = current_identity()
        require_admin(identity)

        upload_totals = db.session.query(
            func.count(Upload.id),
            func.coalesce(func.sum(Upload.file_size_bytes), 0),
            func.coalesce(func.sum(Upload.sheet_count), 0),
            func.coalesce(func.sum(Upload.row_count), 0)
        ).filter(Upload.is_deleted.is_(False)).one()
        recent_uploads = Upload.query.filter_by(is_deleted=False).order_by(
            Upload.created_at.desc()).limit(5).all()
        charts_by_dimension = db.session.query(
            Chart.chart_dimension, func.count(Chart.id)).group_by(Chart.chart_dimension).all()
        insights_by_kind = db.session.query(
            Insight.kind, func.count(Insight.id)).group_by(Insight.kind).all()

        return jsonify({
            'status': 'success',
            'data': {
                'uploads': {
                    'total': upload_totals[0],
                    'total_size': int(upload_totals[1]),
                    'total_sheets': int(upload_totals[2]),
                    'total_rows': int(upload_totals[3]),
                    'recent': [upload.get_summary() for upload in recent_uploads]
                },
                'charts': {
                    'total': sum(count for _, count in charts_by_dimension),
                    'by_dimension': [{'dimension': d, 'count': c} for d, c in charts_by_dimension]
                },
                'insights': {
                    'total': sum(count for _, count in insights_by_kind),
                    'by_type': [{'type': k, 'count': c} for k, c in insights_by_kind]
                }
            }
        })

    @app.route('/api/admin/uploads')
    def api_admin_uploads():
        identity = current_identity()
        require_admin(identity)
        page, limit = pagination_args(20)

        filters = {'is_deleted': False}
        if request.args.get('user_id'):
            filters['owner'] = request.args.get('user_id')
        if request.args.get('status'):
            filters['status'] = request.args.get('status')

        records, total = get_store().find(
            Upload, filters=filters, order_by=Upload.created_at.desc(), page=page, limit=limit)
        return paginated_response(records, total, page, limit, Upload.get_summary)


def validate_chart_payload(payload, partial=False):
    """Check a chart create (or partial update) payload"""
    required = [] if partial else [
        'upload_id', 'title', 'chart_type', 'chart_dimension', 'configuration', 'chart_data'
    ]
    missing = [name for name in required if payload.get(name) in (None, '', {}, [])]
    if missing:
        raise ValidationError(f"Please provide all required fields: {', '.join(missing)}")

    if 'upload_id' in payload:
        try:
            payload['upload_id'] = int(payload['upload_id'])
        except (TypeError, ValueError):
            raise ValidationError('upload_id must be an integer')

    if 'title' in payload:
        title = payload['title']
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('Chart title is required')
        if len(title.strip()) > 200:
            raise ValidationError('Title cannot exceed 200 characters')

    description = payload.get('description')
    if description is not None and (not isinstance(description, str) or len(description) > 1000):
        raise ValidationError('Description cannot exceed 1000 characters')

    if 'chart_type' in payload and payload['chart_type'] not in CHART_TYPES:
        raise ValidationError(f"Invalid chart type: {payload['chart_type']}")

    if 'chart_dimension' in payload and payload['chart_dimension'] not in CHART_DIMENSIONS:
        raise ValidationError('Chart dimension must be 2D or 3D')

    if 'configuration' in payload:
        configuration = payload['configuration']
        if not isinstance(configuration, dict) or not configuration.get('xAxis') \
                or not configuration.get('yAxis'):
            raise ValidationError('Chart configuration requires xAxis and yAxis')

    if 'chart_data' in payload and not isinstance(payload['chart_data'], dict):
        raise ValidationError('Chart data must be an object')

    if 'tags' in payload and not isinstance(payload['tags'], list):
        raise ValidationError('Tags must be a list')
