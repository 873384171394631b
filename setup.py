"""
Setup configuration for Ketchup Tracker.

This file tells pip how to install the package and creates the 'ketchup' command.

To install for development (editable mode):
    pip install -e .[test]

This creates the 'ketchup' command that you can use from anywhere.
"""

from setuptools import setup, find_packages

setup(
    name="ketchup-tracker",
    version="0.1.0",
    description="Personal medication dose log with a 28-day cycle view, diary and PDF reports",
    author="Your Name",
    python_requires=">=3.10",

    # find_packages() finds the ketchup_tracker folder
    packages=find_packages(exclude=["tests"]),

    install_requires=[
        "click>=8.0.0",
        "tabulate>=0.9.0",
        "flask>=2.3.0",
        "reportlab>=4.0.0",
        "pandas>=2.0.0",
        "openpyxl>=3.1.0",
    ],

    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },

    # This creates the 'ketchup' command
    entry_points={
        "console_scripts": [
            "ketchup=ketchup_tracker.cli:main",
        ],
    },
)
