#!/usr/bin/env python3

from setuptools import setup, find_packages

setup(
    name="projectgen",
    version="1.0.0",
    description="project-gen: an LLM-driven generator that plans, scaffolds, builds, fixes and documents TypeScript/Node projects",
    author="project-gen Team",
    author_email="projectgen@example.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        # LLM APIs
        "openai>=1.0.0",
        "google-generativeai>=0.3.0",

        # HTTP clients
        "aiohttp>=3.8.0",
        "httpx>=0.24.0",

        # Utilities
        "click>=8.1.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "project-gen=projectgen.cli:main",
        ]
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Code Generators",
    ],
)
