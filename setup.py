"""
Setup script for hanzinet.

HanziNet is a terminal learning tool for Chinese characters. It combines:

1. Flashcard networks - sides connected by labelled arrows, routed and
   studied arrow by arrow
2. Character spaced repetition - dictionary import, paced unlocking and
   review sessions
3. Answer checking - pinyin in any tone notation, keyword meanings

The 'hanzinet' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="hanzinet",
    version="0.3.0",
    description="Flashcard networks and spaced repetition for learning Chinese characters",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="HanziNet",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
        # Fuzzy matching
        "rapidfuzz>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "hanzinet=hanzinet.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="chinese hanzi pinyin flashcards spaced-repetition cli",
)
