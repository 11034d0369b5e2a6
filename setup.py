"""
Finance Ingest - Setup Configuration
"""
from setuptools import setup, find_packages
from pathlib import Path

# Read README
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="finance-ingest",
    version="1.0.0",
    description="Extracts and categorizes transactions from bank SMS, statement text and CSV exports",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "psycopg2-binary>=2.9.9",
        "anthropic>=0.39.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-cov>=4.1.0",
            "black>=23.12.1",
            "flake8>=7.0.0",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "finance-init-db=finance_ingest.cli.init_db:main",
            "finance-import-csv=finance_ingest.cli.import_csv:main",
            "finance-import-statement=finance_ingest.cli.import_statement:main",
            "finance-sync-sms=finance_ingest.cli.sync_sms:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Office/Business :: Financial",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
