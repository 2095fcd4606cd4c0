"""
Setup script for linreg package.
"""

from setuptools import setup, find_packages

setup(
    name="linreg",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",

        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",

        # Web server
        "fastapi>=0.70.0",
        "uvicorn>=0.15.0",
        "pydantic>=1.8.0",

        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
            "httpx>=0.23.0",
            "scipy>=1.7.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'linreg=linreg.__main__:main',
        ],
    },
    description="Least-squares line fitting service with persistent datasets",
    keywords="regression, least squares, datasets",
    python_requires=">=3.8",
)
