#!/usr/bin/env python3
"""
Setup script for PC Solver
"""

from setuptools import setup, find_packages

# Read the README file
def read_readme():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()

# Read requirements
def read_requirements():
    with open("requirements.txt", "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="pc-solver",
    version="1.0.0",
    description="PC Solver: perfect clear search for falling-block puzzles",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pc_solver", "pc_solver.*"]),
    py_modules=["main"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Games/Entertainment :: Puzzle Games",
    ],
    python_requires=">=3.9",
    install_requires=read_requirements(),
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "pc-solver=main:main",
        ],
    },
    keywords=[
        "tetris",
        "perfect-clear",
        "solver",
        "expectimax",
    ],
)
