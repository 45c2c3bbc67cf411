#!/usr/bin/env python3
"""
Setup script for the sheet context engine

Installs the `sheet_context` and `shared` packages from backend/
"""

from setuptools import setup, find_packages

setup(
    name="ultrasheets-context",
    version="0.1.0",
    package_dir={"": "backend"},
    packages=find_packages(where="backend", exclude=["*.tests", "*.tests.*", "tests"]),
    python_requires=">=3.9",
    install_requires=[
        # 📋 Data Validation & Settings
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",

        # 📊 Data Processing
        "openpyxl>=3.1.2",
    ],
    extras_require={
        # 🧪 Testing
        "test": [
            "pytest>=7.4",
        ],
    },
)
