"""Setup script for batchstate."""

from setuptools import find_packages, setup

setup(
    name="batchstate",
    version="0.1.0",
    description="Typed execution context with dirty tracking for batch checkpoints",
    author="batchstate Team",
    packages=find_packages(include=["batchstate", "batchstate.*"]),
    install_requires=[
        "duckdb>=1.2.0",  # Checkpoint state backend
        "typer>=0.9.0",  # CLI framework
        "rich>=13.0.0",  # CLI output formatting
        "pyyaml>=6.0",  # Configuration handling
    ],
    package_data={
        "batchstate": ["py.typed"],
    },
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
            "black>=22.1.0",
            "isort>=5.10.1",
            "flake8>=4.0.1",
            "mypy>=1.0.0",  # Type checking
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "batchstate=batchstate.cli.main:cli",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Database",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
