"""
Excel Analytics Setup Instructions

To run this application on your local system:

1. Install Python 3.11+ if not already installed

2. Create a virtual environment:
   python -m venv excel_analytics_env

3. Activate the virtual environment:
   - Windows: excel_analytics_env\\Scripts\\activate
   - Mac/Linux: source excel_analytics_env/bin/activate

4. Install the application and its dependencies:
   pip install -e .            (add [postgres] for PostgreSQL, [test] for pytest)

5. Set environment variables (optional):
   - SESSION_SECRET=your-secret-key-here
   - DATABASE_URL=sqlite:///excel_analytics.db (default)
   - UPLOAD_FOLDER=uploads (default)
   - MAX_FILE_SIZE=10485760 (bytes, default 10MB)
   - LOG_LEVEL=INFO (default)

6. Run the application:
   python main.py

   Or with gunicorn:
   gunicorn --bind 0.0.0.0:5000 --reuse-port --reload main:app

7. Call the API at http://localhost:5000 with the X-User-Id (and optionally
   X-User-Role) header set by your authentication gateway.

8. Run the tests:
   pytest

File Structure:
├── main.py                     # Entry point
├── app.py                      # Flask app configuration
├── models.py                   # Database models
├── routes.py                   # API routes
├── analyzers/
│   ├── numeric.py              # Shared numeric coercion
│   ├── data_type_analyzer.py   # Column types and statistics
│   ├── trend_detector.py       # Trend direction and volatility
│   ├── anomaly_detector.py     # Z-score outliers
│   └── insight_generator.py    # Summary / trend / anomaly / recommendation insights
├── parsers/
│   ├── file_parser.py          # Base parser and factory
│   ├── excel_parser.py         # Workbook parser
│   └── table_normalizer.py     # Sheet rows -> headers + row dicts
├── utils/
│   ├── access.py               # Caller identity and ownership checks
│   ├── exceptions.py           # Error hierarchy
│   ├── file_storage.py         # Stored upload files
│   └── record_store.py         # CRUD persistence handle
└── tests/                      # pytest suite
"""
from setuptools import setup

setup(
    name="excel-analytics",
    version="1.0.0",
    description="Spreadsheet upload, parsing and statistical insight API",
    python_requires=">=3.9",
    packages=["analyzers", "parsers", "utils"],
    py_modules=["app", "main", "models", "routes"],
    install_requires=[
        "Flask>=3.0",
        "Flask-SQLAlchemy>=3.1",
        "SQLAlchemy>=2.0",
        "Werkzeug>=3.0",
        "gunicorn>=21.2",
        "pandas>=2.1",
        "numpy>=1.25",
        "openpyxl>=3.1",
        "xlrd>=2.0.1",
    ],
    extras_require={
        "postgres": ["psycopg2-binary>=2.9.7"],
        "test": ["pytest>=7.4"],
    },
)
