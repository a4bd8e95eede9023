"""
SetuDB Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="setudb",
    version="1.0.0",
    author="SetuDB Contributors",
    description="Structured queries, instrumented execution and CRUD helpers on top of raw SQL",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ],
    python_requires=">=3.9",
    install_requires=[
        "sqlglot>=20.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "pyyaml>=6.0",
        "duckdb>=0.9.0",
    ],
    extras_require={
        "postgres": ["psycopg2-binary>=2.9.0"],
        "test": ["pytest>=7.0.0", "pytest-cov>=4.0.0"],
        "dev": ["pytest>=7.0.0", "pytest-cov>=4.0.0", "black>=23.0.0", "mypy>=1.0.0"],
    },
    keywords="sql, database, query-builder, crud, sqlite, duckdb, postgres",
)
