"""
Setup script for personalization-engine.

The personalization engine decides what content a user sees next. It
serves four roles:

1. Scoring - Rank content by relevance, quality, recency and diversity
2. Knowledge tracking - Per-topic progression from beginner to advanced
3. Gap analysis - Missing prerequisites and an ordered learning path
4. Content graph - Similarity, relationships, clusters and anti-repetition

Embeddings come from a local sentence-transformers model (the 'embeddings'
extra) or from any OpenAI-compatible endpoint.
"""

from setuptools import find_namespace_packages, setup

setup(
    name="personalization-engine",
    version="1.0.0",
    description="Content personalization and knowledge-graph engine",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["config"],
    package_data={
        "src.scoring": ["data/*.json"],
        "src.knowledge": ["data/*.json"],
    },
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "requests>=2.28.0",
        # Logging
        "loguru>=0.7.0",
        # Vector math
        "numpy>=1.24.0",
        # Dates
        "python-dateutil>=2.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "embeddings": [
            "sentence-transformers>=2.2.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="personalization recommendation knowledge-graph embeddings",
)
